"""
ndligature — ligature combination engine.

Given a word and a table of (glyph, sequence) rules, enumerate every distinct
string obtained by replacing zero or more non-overlapping rule occurrences
with their glyphs. Used to find spellings that fit a short display field
(MAX_CHARS_IN_TAG codepoints).

Pipeline for one word:
  find_occurrences         -> start offsets per rule (rules with none are dropped)
  generate_combinations    -> backtracking over per-rule decisions (skip / apply at k)
  *_all_cases              -> union over word, word.upper(), word.lower()
  filter_by_length         -> keep results of at most N codepoints

Counting is in Unicode codepoints. Python strings are already codepoint
sequences, but a string may still carry a UTF-16 surrogate pair (e.g. text
decoded with 'surrogatepass'); such a pair counts as one codepoint.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .ligature_table import LigatureRule, RuleLike, Rules, coerce_rules

MAX_CHARS_IN_TAG = 4

SORT_ORDERS = ("alphabetical", "length")

SKIP = -1

# ----------------------------- Data structures ----------------------------- #


@dataclass(frozen=True)
class Occurrence:
    """A place where a rule's sequence appears in a word: [start, end)."""

    rule_index: int
    start: int
    end: int


@dataclass(frozen=True)
class RuleOccurrences:
    """
    All occurrences of one rule in one word.

    rule_index:
        Position of the rule in the rule set it came from.

    starts:
        Ascending start offsets, overlapping matches of this rule included.
    """

    rule_index: int
    rule: LigatureRule
    starts: Tuple[int, ...]

    def interval(self, k: int) -> Tuple[int, int]:
        start = self.starts[k]
        return start, start + len(self.rule.sequence)

    def occurrences(self) -> List[Occurrence]:
        return [
            Occurrence(self.rule_index, *self.interval(k)) for k in range(len(self.starts))
        ]


# ---------------------------- Codepoint counting --------------------------- #


def _is_high_surrogate(ch: str) -> bool:
    return "\ud800" <= ch <= "\udbff"


def _is_low_surrogate(ch: str) -> bool:
    return "\udc00" <= ch <= "\udfff"


def _codepoint_width(text: str, i: int) -> int:
    """Number of str units making up the codepoint at index i (1, or 2 for a surrogate pair)."""
    if (
        _is_high_surrogate(text[i])
        and i + 1 < len(text)
        and _is_low_surrogate(text[i + 1])
    ):
        return 2
    return 1


def count_codepoints(text: str) -> int:
    """
    Count Unicode codepoints. A surrogate pair is one codepoint; an unpaired
    surrogate is counted as one as well.
    """
    count = 0
    i = 0
    n = len(text)
    while i < n:
        i += _codepoint_width(text, i)
        count += 1
    return count


def filter_by_length(
    results: Iterable[str], max_codepoints: int = MAX_CHARS_IN_TAG
) -> List[str]:
    """Keep results of at most max_codepoints codepoints, in their given order."""
    if max_codepoints < 0:
        raise ValueError(f"max_codepoints must be >= 0; got {max_codepoints}")
    return [r for r in results if count_codepoints(r) <= max_codepoints]


# ------------------------------- Occurrences ------------------------------- #


def _find_occurrences(word: str, rules: Rules) -> List[RuleOccurrences]:
    out: List[RuleOccurrences] = []
    for idx, rule in enumerate(rules):
        starts: List[int] = []
        i = word.find(rule.sequence)
        while i != -1:
            starts.append(i)
            # restart one past the match start so self-overlapping matches count
            i = word.find(rule.sequence, i + 1)
        if starts:
            out.append(RuleOccurrences(rule_index=idx, rule=rule, starts=tuple(starts)))
    return out


def find_occurrences(word: str, rules: Sequence[RuleLike]) -> List[RuleOccurrences]:
    """
    Locate every rule sequence in word (exact, case-sensitive).

    Returns one entry per rule that occurs at least once, in rule order.
    Overlap between different rules is not filtered here.
    """
    return _find_occurrences(word, coerce_rules(rules))


# ------------------------------- Enumeration ------------------------------- #


def _conflicts(
    opts: Sequence[RuleOccurrences], choices: Tuple[int, ...], start: int, end: int
) -> bool:
    for j, prev in enumerate(choices):
        if prev == SKIP:
            continue
        prev_start, prev_end = opts[j].interval(prev)
        if not (prev_end <= start or end <= prev_start):
            return True
    return False


def _materialize(
    word: str, opts: Sequence[RuleOccurrences], choices: Tuple[int, ...]
) -> str:
    """Apply the chosen replacements right to left so earlier offsets stay valid."""
    repls: List[Tuple[int, int, str]] = []
    for j, k in enumerate(choices):
        if k == SKIP:
            continue
        start, end = opts[j].interval(k)
        repls.append((start, end, opts[j].rule.glyph))

    repls.sort(key=lambda r: r[0], reverse=True)

    result = word
    for start, end, glyph in repls:
        result = result[:start] + glyph + result[end:]
    return result


def _generate(word: str, rules: Rules) -> List[str]:
    opts = _find_occurrences(word, rules)
    if not opts:
        return [word]

    # dict as an insertion-ordered set
    results: Dict[str, None] = {}

    # Work stack of partial choice vectors; len(choices) is the next rule to decide.
    stack: List[Tuple[int, ...]] = [()]
    while stack:
        choices = stack.pop()
        depth = len(choices)
        if depth == len(opts):
            results.setdefault(_materialize(word, opts, choices), None)
            continue

        opt = opts[depth]
        # Pushed in reverse so that "skip" is explored first.
        for k in reversed(range(len(opt.starts))):
            start, end = opt.interval(k)
            if not _conflicts(opts, choices, start, end):
                stack.append(choices + (k,))
        stack.append(choices + (SKIP,))

    return list(results)


def generate_combinations(word: str, rules: Sequence[RuleLike]) -> List[str]:
    """
    Enumerate every distinct string reachable from word by applying any subset
    of rules, each at most once, with pairwise non-overlapping source intervals.

    Explicit-stack backtracking: each rule with at least one occurrence gets
    exactly one decision (skip, or apply at occurrence k), and "apply" is only
    allowed when it does not overlap an earlier rule's committed interval.
    The unchanged word is always part of the result.

    Example:
      generate_combinations("abc", [("X", "ab"), ("Y", "bc")])
        => ["abc", "aY", "Xc"]
    """
    return _generate(word, coerce_rules(rules))


def _generate_all_cases(word: str, rules: Rules) -> List[str]:
    results: Dict[str, None] = {}
    for variant in (word, word.upper(), word.lower()):
        for r in _generate(variant, rules):
            results.setdefault(r, None)
    return list(results)


def generate_combinations_all_cases(word: str, rules: Sequence[RuleLike]) -> List[str]:
    """Union of generate_combinations over the word as-is, upper-cased and lower-cased."""
    return _generate_all_cases(word, coerce_rules(rules))


def _enumerate(word: str, rules: Rules, all_cases: bool) -> List[str]:
    if all_cases:
        return _generate_all_cases(word, rules)
    return _generate(word, rules)


def enumerate_combinations(
    word: str, rules: Sequence[RuleLike], all_cases: bool = True
) -> List[str]:
    """Case-aware entry point: all_cases=False searches only the word as given."""
    return _enumerate(word, coerce_rules(rules), all_cases)


# ------------------------------ Length estimate ---------------------------- #


def estimate_original_length(result: str, rules: Sequence[RuleLike]) -> int:
    """
    Estimate how many codepoints result had before any glyph substitution.

    Scans left to right. Where a rule's glyph starts, the first such rule in
    table order contributes the codepoint length of its sequence; any other
    codepoint contributes 1. A glyph that was already in the source text is
    indistinguishable from a substituted one, so this is a sort key only.
    """
    table = [(r.glyph, count_codepoints(r.sequence)) for r in coerce_rules(rules)]
    total = 0
    i = 0
    n = len(result)
    while i < n:
        for glyph, seq_len in table:
            if result.startswith(glyph, i):
                total += seq_len
                i += len(glyph)
                break
        else:
            total += 1
            i += _codepoint_width(result, i)
    return total


# ------------------------------ Presentation ------------------------------- #


def sort_results(
    results: Iterable[str], rules: Sequence[RuleLike], order: str = "alphabetical"
) -> List[str]:
    """
    Order results for display.

    alphabetical:
        Plain string order.
    length:
        Longest estimated original text first (stable for equal estimates).
    """
    if order == "alphabetical":
        return sorted(results)
    if order == "length":
        table = coerce_rules(rules)
        cache: Dict[str, int] = {}

        def key(r: str) -> int:
            if r not in cache:
                cache[r] = estimate_original_length(r, table)
            return -cache[r]

        return sorted(results, key=key)
    raise ValueError(f"Unknown sort order {order!r}. Use one of: {', '.join(SORT_ORDERS)}")


def search_results(
    query: Optional[str],
    results: Sequence[str],
    rules: Sequence[RuleLike],
    all_cases: bool = True,
) -> List[str]:
    """
    Return the results containing any spelling of query.

    The query is expanded with the same rules, so searching "ae" also finds
    results containing "æ". A blank query returns every result.
    """
    if query is None or not query.strip():
        return list(results)
    combos = enumerate_combinations(query.strip(), rules, all_cases)
    return [r for r in results if any(c in r for c in combos)]
