"""
Grammar for Sandstorm route expressions.

Grammar Specification
=====================

<expression>  ::= <part>*
<part>        ::= <literal> | <placeholder>
<literal>     ::= any character except "{" and "}"
<placeholder> ::= "{" [ <kind> [ "(" <bound> ")" ] ":" ] <name> "}"
<kind>        ::= "number" | "string"
<bound>       ::= <digits> | <digits> "-" [ <digits> ]
<name>        ::= any character except "}" and "/"

Leading and trailing slashes are not significant: both the expression and
the request path are trimmed before matching.

Placeholder Kinds
=================
- number: one or more decimal digits
- string: one or more characters excluding "/"
- untyped ``{name}``: same as string

Bounds
======
The bound limits the length of the captured value:

{number(1-11):id}     # 1 to 11 digits
{number(4):year}      # exactly 4 digits
{string(3-):slug}     # 3 or more characters

Annotation Form
===============
@router user/{number(1-11):id}/profile -> profile

Only the text before "->" is the route expression. A line without "->"
declares no route.
"""

# (character class, castor) for each placeholder kind
KIND_PATTERNS = {
    "number": (r"[0-9]", int),
    "string": (r"[^/]", str),
}

DEFAULT_KIND = "string"

ANNOTATION_TAG = "@router"
ANNOTATION_SEPARATOR = "->"
