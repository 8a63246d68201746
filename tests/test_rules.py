"""
Tests for the Route Registry / Generator and the rewrite-rule file.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from sandstorm.faults import ResolutionError
from sandstorm.patterns import compile_pattern
from sandstorm.rules import RewriteRule, RouteGenerator, RuleFile


SAMPLE_LINE = r'RewriteRule "^user/([0-9]{1,11})/profile$" - [E=CONTROLLER:user/user.py|user|profile,L]'


class TestRewriteRule:

    def test_from_line(self):
        rule = RewriteRule.from_line(SAMPLE_LINE)

        assert rule.regex == r"^user/([0-9]{1,11})/profile$"
        assert rule.directive == "user/user.py|user|profile"

    def test_to_line(self):
        rule = RewriteRule(r"^user/([0-9]{1,11})/profile$", "user/user.py|user|profile")
        assert rule.to_line() == SAMPLE_LINE

    def test_quotes_are_escaped(self):
        rule = RewriteRule('^say/"hi"$', "say.py||")

        assert '\\"hi\\"' in rule.to_line()
        assert RewriteRule.from_line(rule.to_line()) == rule

    def test_unreadable_line(self):
        assert RewriteRule.from_line("RewriteEngine On") is None

    def test_matches(self):
        rule = RewriteRule.from_line(SAMPLE_LINE)

        assert rule.matches("/user/42/profile")
        assert not rule.matches("/user/abc/profile")


class TestRuleFile:

    def test_append_and_load(self, tmp_path):
        rule_file = RuleFile(tmp_path / "conf" / "rules.conf")
        rule = RewriteRule(r"^blog/([^/]+)$", "blog/blog.py|blog|show")

        assert rule_file.append(rule) is True
        assert rule_file.load() == [rule]
        assert rule in rule_file

    def test_append_is_idempotent(self, tmp_path):
        rule_file = RuleFile(tmp_path / "rules.conf")
        rule = RewriteRule(r"^blog/([^/]+)$", "blog/blog.py|blog|show")

        rule_file.append(rule)
        assert rule_file.append(rule) is False
        assert rule_file.path.read_text().count("RewriteRule") == 1

    def test_concurrent_appends_do_not_interleave(self, tmp_path):
        rule_file = RuleFile(tmp_path / "rules.conf")
        rules = [RewriteRule(f"^page/{i}$", f"page.py|page|p{i}") for i in range(20)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(rule_file.append, rules + rules))

        lines = rule_file.path.read_text().splitlines()
        assert len(lines) == 20
        assert sorted(RewriteRule.from_line(line).directive for line in lines) == \
            sorted(r.directive for r in rules)

    def test_load_skips_comments_and_garbage(self, tmp_path):
        path = tmp_path / "rules.conf"
        path.write_text("# generated\n\nRewriteEngine On\n" + SAMPLE_LINE + "\n")

        assert [r.directive for r in RuleFile(path).load()] == ["user/user.py|user|profile"]

    def test_missing_file_is_empty(self, tmp_path):
        rule_file = RuleFile(tmp_path / "absent.conf")

        assert rule_file.load() == []
        assert rule_file.lookup("/anything") is None

    def test_lookup_first_match(self, tmp_path):
        rule_file = RuleFile(tmp_path / "rules.conf")
        rule_file.append(RewriteRule(r"^blog/([^/]+)$", "blog/blog.py|blog|show"))
        rule_file.append(RewriteRule(r"^blog/(.+)$", "other.py||"))

        assert rule_file.lookup("/blog/my-post?x=1") == "blog/blog.py|blog|show"
        assert rule_file.lookup("/blog/a/b") == "other.py||"
        assert rule_file.lookup("/about") is None


class TestRouteGenerator:

    @pytest.fixture
    def generator(self, settings, resolver):
        return RouteGenerator(settings, resolver)

    def test_discover_matches_live_compilation(self, generator):
        rules = {r.directive: r for r in generator.discover()}

        profile = rules["user/user.py|user|profile"]
        assert profile.regex == compile_pattern("user/{number(1-11):id}/profile").regex
        assert rules["blog/blog.py|blog|show"].regex == r"^blog/([^/]+)$"

    def test_annotation_target_is_the_directive_action(self, generator):
        rules = {r.regex: r for r in generator.discover()}
        assert rules[r"^archive/([0-9]{4})$"].directive == "blog/blog.py|blog|index"

    def test_actions_without_routes_are_skipped(self, generator):
        directives = [r.directive for r in generator.discover()]

        assert not any(d.startswith("bare/") for d in directives)
        assert not any(d.startswith("counter.py") for d in directives)

    def test_apply_rules_is_idempotent(self, generator, tmp_path):
        added = generator.apply_rules()
        again = generator.apply_rules()

        assert len(added) == 3
        assert again == []
        assert len((tmp_path / "rules.conf").read_text().splitlines()) == 3

    def test_apply_rules_without_rule_file(self, settings, resolver):
        generator = RouteGenerator(settings.with_overrides(rule_file=None), resolver)
        assert generator.apply_rules() == []

    def test_ensure_generates_on_first_miss(self, generator):
        assert generator.ensure("/user/42/profile") == "user/user.py|user|profile"
        assert generator.ensure("/nothing/here") is None

    def test_scaffold(self, generator, site):
        path = generator.scaffold("shop/cart", "cart", "view")

        assert path == site / "shop" / "cart.py"
        text = path.read_text()
        assert "class CartController(Controller):" in text
        assert "def view(self, *args):" in text

    def test_scaffold_keeps_existing_file(self, generator, site):
        before = (site / "home.py").read_text()

        assert generator.scaffold("home.py", "default", "index") is None
        assert (site / "home.py").read_text() == before

    def test_scaffolded_controller_declares_no_routes(self, generator):
        generator.scaffold("shop/cart.py", "cart", "index")
        directives = [r.directive for r in generator.discover()]

        assert not any(d.startswith("shop/") for d in directives)

    def test_scaffold_stays_inside_site_root(self, generator, tmp_path):
        with pytest.raises(ResolutionError):
            generator.scaffold("../../escaped.py", "escaped", "index")

        assert not (tmp_path.parent / "escaped.py").exists()

    def test_target_path_inside_site_root(self, generator, site):
        assert generator.target_path("shop/../blog/blog") == site / "shop" / ".." / "blog" / "blog.py"
