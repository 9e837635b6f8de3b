"""
ligature_table — ligature rules and the default rule table.

A rule maps a short source sequence (e.g. "ae") to a single display glyph
(e.g. "æ"). Rule sets are plain ordered sequences; order only matters for
enumeration order and for the glyph tie-break in the length estimator.

Rules file format (UTF-8):
  GLYPH SEQUENCE      # one rule per line, whitespace separated
  # comment           # lines starting with '#' are ignored, as are blank lines

Example:
  æ ae
  ﬃ ffi
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union


class LigatureError(Exception):
    """Base class for all ligature engine errors."""


class InvalidRuleError(LigatureError, ValueError):
    """A rule (or rules file line) that the engine refuses to search with."""


@dataclass(frozen=True)
class LigatureRule:
    """
    glyph:
        The display symbol written in place of the sequence (usually one codepoint).

    sequence:
        The source characters the glyph stands for. Matching is case-sensitive.
    """

    glyph: str
    sequence: str

    def __post_init__(self) -> None:
        if not isinstance(self.glyph, str) or not isinstance(self.sequence, str):
            raise InvalidRuleError(
                f"glyph and sequence must be strings; got {self.glyph!r}, {self.sequence!r}"
            )
        if not self.glyph:
            raise InvalidRuleError(f"empty glyph for sequence {self.sequence!r}")
        if not self.sequence:
            raise InvalidRuleError(f"empty sequence for glyph {self.glyph!r}")


RuleLike = Union[LigatureRule, Tuple[str, str]]
Rules = Tuple[LigatureRule, ...]


def coerce_rules(rules: Optional[Iterable[RuleLike]]) -> Rules:
    """
    Normalize caller-supplied rules into an immutable tuple of LigatureRule.

    Accepts LigatureRule instances or (glyph, sequence) pairs. None means an
    empty rule set. Raises InvalidRuleError on empty fields or malformed pairs.
    """
    if rules is None:
        return ()
    out: List[LigatureRule] = []
    for item in rules:
        if isinstance(item, LigatureRule):
            out.append(item)
            continue
        try:
            glyph, sequence = item
        except (TypeError, ValueError):
            raise InvalidRuleError(
                f"expected a (glyph, sequence) pair; got {item!r}"
            ) from None
        out.append(LigatureRule(glyph=glyph, sequence=sequence))
    return tuple(out)


# ---------------------------- Default rule table --------------------------- #

# (glyph, sequence)
_DEFAULT_PAIRS: Tuple[Tuple[str, str], ...] = (
    # Typographic ligatures
    ("ﬀ", "ff"),
    ("ﬁ", "fi"),
    ("ﬂ", "fl"),
    ("ﬃ", "ffi"),
    ("ﬄ", "ffl"),
    ("ﬆ", "st"),
    # Latin ligatures and digraph letters
    ("Æ", "AE"),
    ("æ", "ae"),
    ("Œ", "OE"),
    ("œ", "oe"),
    ("Ĳ", "IJ"),
    ("ĳ", "ij"),
    ("Ǆ", "DŽ"),
    ("Ǳ", "DZ"),
    ("ǲ", "Dz"),
    ("ǳ", "dz"),
    ("Ǉ", "LJ"),
    ("ǈ", "Lj"),
    ("ǉ", "lj"),
    ("Ǌ", "NJ"),
    ("ǋ", "Nj"),
    ("ǌ", "nj"),
    ("Ꜳ", "AA"),
    ("ꜳ", "aa"),
    ("Ꜵ", "AO"),
    ("ꜵ", "ao"),
    ("Ꜷ", "AU"),
    ("ꜷ", "au"),
    ("Ꜹ", "AV"),
    ("ꜹ", "av"),
    ("Ꜽ", "AY"),
    ("ꜽ", "ay"),
    ("Ꝏ", "OO"),
    ("ꝏ", "oo"),
    ("Ꜩ", "TZ"),
    ("ꜩ", "tz"),
    ("Ꝡ", "VY"),
    ("ꝡ", "vy"),
    ("ᵫ", "ue"),
    ("ʦ", "ts"),
    ("ʣ", "dz"),
    ("ʪ", "ls"),
    ("ʫ", "lz"),
    ("ȸ", "db"),
    ("ȹ", "qp"),
    # Letterlike symbols
    ("™", "TM"),
    ("℠", "SM"),
    ("℡", "TEL"),
    ("№", "No"),
    # CJK compatibility squared units
    ("㎅", "KB"),
    ("㎆", "MB"),
    ("㎇", "GB"),
    ("㎈", "cal"),
    ("㎉", "kcal"),
    ("㎎", "mg"),
    ("㎏", "kg"),
    ("㎐", "Hz"),
    ("㎖", "ml"),
    ("㎜", "mm"),
    ("㎝", "cm"),
    ("㎞", "km"),
    ("㎩", "Pa"),
    ("㎳", "ms"),
    ("㏄", "cc"),
    ("㏈", "dB"),
    ("㏑", "ln"),
    ("㏒", "log"),
    ("㏖", "mol"),
    ("㏗", "pH"),
    ("㍱", "hPa"),
)

DEFAULT_RULES: Rules = coerce_rules(_DEFAULT_PAIRS)


# ------------------------------- Rules files ------------------------------- #


def parse_rule_line(text: str) -> LigatureRule:
    """Parse a single 'GLYPH SEQUENCE' line."""
    parts = text.split()
    if len(parts) != 2:
        raise InvalidRuleError(
            f"Invalid rule {text.strip()!r}. Expected 'GLYPH SEQUENCE' (e.g., 'æ ae')."
        )
    return LigatureRule(glyph=parts[0], sequence=parts[1])


def parse_rules_lines(lines: Iterable[str], source: str = "<rules>") -> Rules:
    out: List[LigatureRule] = []
    for ln, line in enumerate(lines, 1):
        s = line.strip()
        if not s or s.startswith("#"):
            continue
        try:
            out.append(parse_rule_line(s))
        except InvalidRuleError as e:
            raise InvalidRuleError(f"{source}:{ln}: {e}") from None
    return tuple(out)


def parse_rules_file(path: Path) -> Rules:
    with path.open("r", encoding="utf-8") as f:
        return parse_rules_lines(f, source=str(path))


# -------------------------------- Selection -------------------------------- #


def select_rules(
    rules: Sequence[RuleLike],
    enable: Optional[Iterable[str]] = None,
    disable: Optional[Iterable[str]] = None,
) -> Rules:
    """
    Restrict a rule table by glyph.

    enable:
        If given, keep only rules whose glyph is listed.
    disable:
        Drop rules whose glyph is listed (applied after enable).

    Table order is preserved. Naming a glyph that is not in the table raises
    InvalidRuleError.
    """
    table = coerce_rules(rules)
    known = {r.glyph for r in table}

    enabled = None if enable is None else set(enable)
    disabled = set(disable) if disable is not None else set()
    for glyph in (enabled or set()) | disabled:
        if glyph not in known:
            raise InvalidRuleError(f"Unknown glyph {glyph!r}; not in the rule table.")

    return tuple(
        r
        for r in table
        if (enabled is None or r.glyph in enabled) and r.glyph not in disabled
    )


def split_glyphs(text: str) -> List[str]:
    """
    Split a CLI glyph list. Comma-separated ("æ,ﬁ") or, with no commas, one
    glyph per character ("æﬁ").
    """
    text = text.strip()
    if not text:
        return []
    if "," in text:
        return [g.strip() for g in text.split(",") if g.strip()]
    return [ch for ch in text if not ch.isspace()]
