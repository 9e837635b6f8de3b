"""Tests for ligature rules, the default table and rules files."""

import pytest

from nd_ligature_tools.ligature_table import (
    DEFAULT_RULES,
    InvalidRuleError,
    LigatureError,
    LigatureRule,
    coerce_rules,
    parse_rules_file,
    parse_rules_lines,
    select_rules,
    split_glyphs,
)


class TestLigatureRule:
    def test_valid_rule(self) -> None:
        rule = LigatureRule("æ", "ae")
        assert rule.glyph == "æ"
        assert rule.sequence == "ae"

    def test_empty_sequence_rejected(self) -> None:
        with pytest.raises(InvalidRuleError):
            LigatureRule("æ", "")

    def test_empty_glyph_rejected(self) -> None:
        with pytest.raises(InvalidRuleError):
            LigatureRule("", "ae")

    def test_invalid_rule_error_is_value_error(self) -> None:
        assert issubclass(InvalidRuleError, ValueError)
        assert issubclass(InvalidRuleError, LigatureError)


class TestCoerceRules:
    def test_pairs_and_rules_mixed(self) -> None:
        rules = coerce_rules([("Ⱡ", "ll"), LigatureRule("Ȼ", "ch")])
        assert rules == (LigatureRule("Ⱡ", "ll"), LigatureRule("Ȼ", "ch"))

    def test_none_is_empty(self) -> None:
        assert coerce_rules(None) == ()

    def test_empty_list(self) -> None:
        assert coerce_rules([]) == ()

    def test_wrong_arity_rejected(self) -> None:
        with pytest.raises(InvalidRuleError):
            coerce_rules([("a", "b", "c")])
        with pytest.raises(InvalidRuleError):
            coerce_rules([("a",)])

    def test_non_pair_rejected(self) -> None:
        with pytest.raises(InvalidRuleError):
            coerce_rules([42])

    def test_empty_sequence_in_pair_rejected(self) -> None:
        with pytest.raises(InvalidRuleError):
            coerce_rules([("X", "")])


class TestDefaultRules:
    def test_not_empty(self) -> None:
        assert len(DEFAULT_RULES) > 0

    def test_glyphs_distinct(self) -> None:
        glyphs = [r.glyph for r in DEFAULT_RULES]
        assert len(set(glyphs)) == len(glyphs)

    def test_contains_common_ligatures(self) -> None:
        pairs = {(r.glyph, r.sequence) for r in DEFAULT_RULES}
        assert ("æ", "ae") in pairs
        assert ("ﬃ", "ffi") in pairs


class TestRulesFile:
    def test_comments_and_blanks_skipped(self) -> None:
        rules = parse_rules_lines(["# ligatures", "", "æ ae", "  ﬁ   fi  "])
        assert rules == (LigatureRule("æ", "ae"), LigatureRule("ﬁ", "fi"))

    def test_bad_line_reports_location(self) -> None:
        with pytest.raises(InvalidRuleError, match=r"^<rules>:2: "):
            parse_rules_lines(["æ ae", "æ"])

    def test_too_many_fields(self) -> None:
        with pytest.raises(InvalidRuleError):
            parse_rules_lines(["æ ae extra"])

    def test_parse_file(self, tmp_path) -> None:
        path = tmp_path / "rules.txt"
        path.write_text("# test\nⱠ ll\nȻ ch\n", encoding="utf-8")
        assert parse_rules_file(path) == (LigatureRule("Ⱡ", "ll"), LigatureRule("Ȼ", "ch"))

    def test_parse_file_error_names_path(self, tmp_path) -> None:
        path = tmp_path / "rules.txt"
        path.write_text("Ⱡ\n", encoding="utf-8")
        with pytest.raises(InvalidRuleError, match="rules.txt:1:"):
            parse_rules_file(path)


class TestSelectRules:
    RULES = [("Ⱡ", "ll"), ("Ȼ", "ch"), ("æ", "ae")]

    def test_no_selection_keeps_all(self) -> None:
        assert select_rules(self.RULES) == coerce_rules(self.RULES)

    def test_enable_keeps_table_order(self) -> None:
        selected = select_rules(self.RULES, enable=["æ", "Ⱡ"])
        assert [r.glyph for r in selected] == ["Ⱡ", "æ"]

    def test_disable(self) -> None:
        selected = select_rules(self.RULES, disable=["Ȼ"])
        assert [r.glyph for r in selected] == ["Ⱡ", "æ"]

    def test_enable_nothing(self) -> None:
        assert select_rules(self.RULES, enable=[]) == ()

    def test_unknown_glyph_rejected(self) -> None:
        with pytest.raises(InvalidRuleError, match="Unknown glyph"):
            select_rules(self.RULES, disable=["ß"])


class TestSplitGlyphs:
    def test_comma_separated(self) -> None:
        assert split_glyphs("æ, ﬁ") == ["æ", "ﬁ"]

    def test_one_per_character(self) -> None:
        assert split_glyphs("æﬁ") == ["æ", "ﬁ"]

    def test_blank(self) -> None:
        assert split_glyphs("  ") == []
