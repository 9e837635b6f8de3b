#!/usr/bin/env python3
"""
nd-tag — find ligature spellings of words that fit a short tag field.

A tag field holds at most --max-chars Unicode codepoints (default 4). Each
word is rewritten with ligature rules (e.g. "ae" -> "æ", "ffi" -> "ﬃ") in
every non-overlapping combination, in its original, upper and lower case
forms, and the spellings that fit are printed.

Commands:
  word WORD        Single word: print every spelling of WORD that fits.
  list             Word list (one per line, --in FILE or stdin): print every
                   fitting spelling of every word, in word order.
  rules            Print the active rule table in rules-file format.

Rules:
  --rules-file PATH   Replace the built-in table ('GLYPH SEQUENCE' per line,
                      '#' for comments).
  --enable GLYPHS     Keep only these glyphs ("æﬁ" or "æ,ﬁ").
  --disable GLYPHS    Drop these glyphs.

Stats and logging:
  --stats prints JSON stats (no candidates) for list mode.
  -v / --verbose prints the rule summary and progress to stderr.

Examples:
  nd-tag word chill
  nd-tag list --in words.txt --sort length --out tags.txt
  nd-tag list --in words.txt --enable "æœﬁ" --stats
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional, TextIO

import typer

from .ligature_table import (
    DEFAULT_RULES,
    InvalidRuleError,
    Rules,
    parse_rules_file,
    select_rules,
    split_glyphs,
)
from .ndbatch import (
    DEFAULT_CHUNK_SIZE,
    BatchController,
    BatchStats,
    ProcessingCancelled,
)
from .ndligature import (
    MAX_CHARS_IN_TAG,
    SORT_ORDERS,
    enumerate_combinations,
    filter_by_length,
    search_results,
    sort_results,
)

app = typer.Typer(
    add_completion=False,
    help="nd-tag — find ligature spellings of words that fit a short tag field.",
)

EXIT_CANCELLED = 130

# ---------------------------------- Options -------------------------------- #

RULES_FILE_OPT = typer.Option(
    None,
    "--rules-file",
    "-r",
    exists=True,
    file_okay=True,
    dir_okay=False,
    readable=True,
    help="Rules file replacing the built-in table ('GLYPH SEQUENCE' per line).",
)
ENABLE_OPT = typer.Option(
    None, "--enable", "-e", help="Only use these glyphs, e.g. 'æœﬁ' or 'æ,œ,ﬁ'."
)
DISABLE_OPT = typer.Option(None, "--disable", "-d", help="Do not use these glyphs.")
CASE_SENSITIVE_OPT = typer.Option(
    False,
    "--case-sensitive",
    help="Only search the word as given (skip the upper/lower case variants).",
)
MAX_CHARS_OPT = typer.Option(
    MAX_CHARS_IN_TAG, "--max-chars", "-n", min=0, help="Maximum codepoints in a result."
)
SORT_OPT = typer.Option(
    "alphabetical",
    "--sort",
    help="Result order: 'alphabetical' or 'length' (longest original text first).",
)
OUT_OPT = typer.Option(
    None, "--out", "-o", writable=True, help="Output file (default: stdout)."
)


# --------------------------------- Helpers --------------------------------- #


def _load_rules(
    rules_file: Optional[Path], enable: Optional[str], disable: Optional[str]
) -> Rules:
    try:
        table = parse_rules_file(rules_file) if rules_file else DEFAULT_RULES
        return select_rules(
            table,
            enable=split_glyphs(enable) if enable is not None else None,
            disable=split_glyphs(disable) if disable is not None else None,
        )
    except InvalidRuleError as e:
        raise typer.BadParameter(str(e)) from e


def _check_sort(sort: str) -> str:
    order = sort.strip().lower()
    if order not in SORT_ORDERS:
        raise typer.BadParameter(
            f"Unknown sort order '{sort}'. Use {' or '.join(SORT_ORDERS)}."
        )
    return order


def _open_in(path: Optional[Path]) -> TextIO:
    if path is None:
        return sys.stdin
    return path.open("r", encoding="utf-8", errors="strict")


def _open_out(path: Optional[Path]) -> TextIO:
    if path is None:
        return sys.stdout
    return path.open("w", encoding="utf-8", errors="strict")


def _read_words(path: Optional[Path]) -> List[str]:
    reader = _open_in(path)
    try:
        return [s for s in (line.strip() for line in reader) if s]
    finally:
        if reader is not sys.stdin:
            reader.close()


def _write_results(results: List[str], path: Optional[Path]) -> None:
    writer = _open_out(path)
    try:
        if results:
            writer.write("\n".join(results) + "\n")
    finally:
        if writer is not sys.stdout:
            writer.close()


def log_rules(table: Rules, source: str) -> None:
    glyphs = "".join(r.glyph for r in table)
    print(f"[tag-rules] source={source} active={len(table)} glyphs={glyphs}", file=sys.stderr)


def log_progress(progress: int) -> None:
    print(f"[tag-progress] {progress}%", file=sys.stderr)


async def _run_batch(
    words: List[str],
    table: Rules,
    all_cases: bool,
    max_chars: int,
    chunk_size: int,
    timeout: Optional[float],
    stats: BatchStats,
    verbose: bool,
) -> List[str]:
    controller = BatchController()
    handle = None
    if timeout is not None:
        # Host-imposed timeout: cancellation is observed at the next yield.
        handle = asyncio.get_running_loop().call_later(timeout, controller.cancel)
    try:
        return await controller.run(
            words,
            table,
            all_cases,
            log_progress if verbose else None,
            max_chars=max_chars,
            chunk_size=chunk_size,
            stats=stats,
        )
    finally:
        if handle is not None:
            handle.cancel()


# ---------------------------------- CLI ------------------------------------ #


@app.command()
def word(
    text: str = typer.Argument(..., metavar="WORD", help="The word to rewrite."),
    rules_file: Optional[Path] = RULES_FILE_OPT,
    enable: Optional[str] = ENABLE_OPT,
    disable: Optional[str] = DISABLE_OPT,
    case_sensitive: bool = CASE_SENSITIVE_OPT,
    max_chars: int = MAX_CHARS_OPT,
    sort: str = SORT_OPT,
    outfile: Optional[Path] = OUT_OPT,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging to stderr."),
) -> None:
    """
    Print every ligature spelling of WORD that fits in --max-chars codepoints.
    """
    text = text.strip()
    if not text:
        raise typer.BadParameter("WORD must not be blank.")
    order = _check_sort(sort)
    table = _load_rules(rules_file, enable, disable)
    if verbose:
        log_rules(table, str(rules_file) if rules_file else "default")

    combinations = enumerate_combinations(text, table, all_cases=not case_sensitive)
    results = sort_results(filter_by_length(combinations, max_chars), table, order)

    if verbose:
        print(
            f"[tag-word] word={text} combinations={len(combinations)} fit={len(results)}",
            file=sys.stderr,
        )
    _write_results(results, outfile)


@app.command("list")
def list_words(
    infile: Optional[Path] = typer.Option(
        None,
        "--in",
        "-i",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="Word list, one word per line (default: stdin).",
    ),
    rules_file: Optional[Path] = RULES_FILE_OPT,
    enable: Optional[str] = ENABLE_OPT,
    disable: Optional[str] = DISABLE_OPT,
    case_sensitive: bool = CASE_SENSITIVE_OPT,
    max_chars: int = MAX_CHARS_OPT,
    sort: str = SORT_OPT,
    search: Optional[str] = typer.Option(
        None,
        "--search",
        "-q",
        help="Only keep results containing a spelling of this text.",
    ),
    chunk_size: int = typer.Option(
        DEFAULT_CHUNK_SIZE, "--chunk-size", min=1, help="Words between progress reports."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", min=0.0, help="Cancel the run after this many seconds."
    ),
    outfile: Optional[Path] = OUT_OPT,
    stats_only: bool = typer.Option(
        False, "--stats", help="Do not emit results; print JSON stats to stdout."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging to stderr."),
) -> None:
    """
    Print every fitting ligature spelling of every word in a word list.

    Blank lines are skipped. Results are ordered per --sort; a spelling reached
    from two different words is listed twice.
    """
    order = _check_sort(sort)
    table = _load_rules(rules_file, enable, disable)
    if verbose:
        log_rules(table, str(rules_file) if rules_file else "default")

    words = _read_words(infile)
    if not words:
        typer.echo("Error: Word list is empty.", err=True)
        raise typer.Exit(1)

    stats = BatchStats()
    try:
        results = asyncio.run(
            _run_batch(
                words,
                table,
                all_cases=not case_sensitive,
                max_chars=max_chars,
                chunk_size=chunk_size,
                timeout=timeout,
                stats=stats,
                verbose=verbose,
            )
        )
    except ProcessingCancelled as e:
        typer.echo(f"{e}.", err=True)
        raise typer.Exit(code=EXIT_CANCELLED)

    results = sort_results(results, table, order)
    if search is not None:
        results = search_results(search, results, table, all_cases=not case_sensitive)

    if verbose:
        print(
            f"[tag-done] words={stats.words_processed} kept={stats.candidates_kept} "
            f"shown={len(results)} duration_ms={stats.duration_ms:.1f}",
            file=sys.stderr,
        )

    if stats_only:
        result = stats.as_dict()
        result["rules_active"] = len(table)
        result["results_total"] = len(results)
        print(json.dumps(result, ensure_ascii=False))
        return

    _write_results(results, outfile)


@app.command()
def rules(
    rules_file: Optional[Path] = RULES_FILE_OPT,
    enable: Optional[str] = ENABLE_OPT,
    disable: Optional[str] = DISABLE_OPT,
    outfile: Optional[Path] = OUT_OPT,
) -> None:
    """
    Print the active rule table, one 'GLYPH<TAB>SEQUENCE' per line.

    The output is a valid --rules-file.
    """
    table = _load_rules(rules_file, enable, disable)
    _write_results([f"{r.glyph}\t{r.sequence}" for r in table], outfile)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
