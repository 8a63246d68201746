"""
Property-based tests for route expressions using Hypothesis.

Properties:
- N placeholders and a substituted path yield N values, in order
- Compilation is idempotent
- A path missing a required literal never matches
- Bounds are honoured
- Number placeholders accept ASCII digits only
"""

from hypothesis import given, strategies as st

from sandstorm.patterns import PatternCompiler, extract, parse_pattern


# ============================================================================
# Strategy Definitions
# ============================================================================

literals = st.text(alphabet="abcdefghijklmnopqrstuvwxyz-_.", min_size=1, max_size=8)

names = st.text(alphabet="abcdefghijklmnopqrstuvwxyz_", min_size=1, max_size=6)

string_values = st.text(
    alphabet="abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-_.~",
    min_size=1,
    max_size=12,
)

number_values = st.integers(min_value=0, max_value=10 ** 11).map(str)


@st.composite
def placeholder_with_value(draw):
    name = draw(names)
    kind = draw(st.sampled_from(["number", "string", None]))
    if kind == "number":
        return f"{{number:{name}}}", draw(number_values)
    if kind == "string":
        return f"{{string:{name}}}", draw(string_values)
    return f"{{{name}}}", draw(string_values)


@st.composite
def expression_with_path(draw):
    """An expression of '/'-separated parts and a path substituting every placeholder."""
    parts = draw(st.lists(
        st.one_of(literals.map(lambda s: (s, None)), placeholder_with_value()),
        min_size=1,
        max_size=6,
    ))
    expression = "/".join(template for template, _ in parts)
    path = "/".join(value if value is not None else template for template, value in parts)
    values = [value for _, value in parts if value is not None]
    return expression, path, values


def compile_expression(expression):
    return PatternCompiler().compile(parse_pattern(expression))


# ============================================================================
# Properties
# ============================================================================

@given(expression_with_path())
def test_substituted_path_yields_values_in_order(case):
    expression, path, values = case
    rule = compile_expression(expression)

    assert len(rule) == len(values)
    assert extract(rule, path) == values


@given(expression_with_path())
def test_compilation_is_idempotent(case):
    expression, _, _ = case
    assert compile_expression(expression) == compile_expression(expression)


@given(literals, literals, string_values)
def test_missing_literal_never_matches(prefix, suffix, value):
    rule = compile_expression(f"{prefix}/{{slug}}/{suffix}")

    assert extract(rule, f"{prefix}/{value}/{suffix}") == [value]
    assert extract(rule, f"{prefix}/{value}") == []
    assert extract(rule, f"{value}/{suffix}") == []


@given(st.integers(min_value=1, max_value=6), st.integers(min_value=0, max_value=6), st.integers(min_value=1, max_value=15))
def test_number_bound_is_enforced(minimum, extra, length):
    maximum = minimum + extra
    rule = compile_expression(f"n/{{number({minimum}-{maximum}):n}}")

    digits = "7" * length
    matched = extract(rule, f"n/{digits}")
    assert (matched == [digits]) == (minimum <= length <= maximum)


@given(st.text(alphabet=st.characters(categories=["Nd"], exclude_characters="0123456789"), min_size=1, max_size=6))
def test_number_only_matches_ascii_digits(digits):
    rule = compile_expression("n/{number:n}")
    assert extract(rule, f"n/{digits}") == []
