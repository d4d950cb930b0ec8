"""Benchmark name filters.

Two modes exist: a case-sensitive substring filter, and an anchored glob
pattern where ``*`` matches zero or more characters.  No other wildcard
is supported.
"""

from __future__ import annotations


def glob_match(name: str, pattern: str) -> bool:
    """Match *name* against *pattern*, anchored at both ends.

    ``write*`` matches ``write_file`` but not ``rewrite``; ``*`` alone
    matches everything; a pattern without ``*`` must equal the name.
    """
    parts = pattern.split("*")
    if len(parts) == 1:
        return name == pattern

    head, *middle, tail = parts
    if not name.startswith(head) or not name.endswith(tail):
        return False
    if len(head) + len(tail) > len(name):
        return False

    # Leftmost match for each middle literal within the unanchored span.
    pos = len(head)
    end = len(name) - len(tail)
    for literal in middle:
        if not literal:
            continue
        found = name.find(literal, pos, end)
        if found < 0:
            return False
        pos = found + len(literal)
    return True


def substring_match(name: str, needle: str) -> bool:
    """Case-sensitive containment check."""
    return needle in name


def name_matches(name: str, *, pattern: str | None, substring: str | None) -> bool:
    """Apply the active filter mode to *name*.

    The glob *pattern* takes precedence over the *substring* filter when
    both are set.  With neither set every name matches.
    """
    if pattern is not None:
        return glob_match(name, pattern)
    if substring is not None:
        return substring_match(name, substring)
    return True
