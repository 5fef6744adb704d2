from __future__ import annotations

from itertools import zip_longest


def line_diff(old_text: str, new_text: str) -> str:
    """Compare two texts line by line at matching positions.

    For each index where the lines differ, the new line is emitted as
    ``+ <line>`` followed by the old line as ``- <line>``; empty lines are
    omitted. This is positional, not a minimal edit script: an inserted line
    shifts every later line into the output.

    Returns:
        The stripped diff text, or ``""`` when nothing differs.
    """
    out: list[str] = []
    for old_line, new_line in zip_longest(old_text.split("\n"), new_text.split("\n"), fillvalue=""):
        if old_line == new_line:
            continue
        if new_line:
            out.append(f"+ {new_line}\n")
        if old_line:
            out.append(f"- {old_line}\n")
    return "".join(out).strip()
