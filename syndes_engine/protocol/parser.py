"""Protocol layer — Command tokenizer.

Turns raw, possibly multi-line input into ``CommandItem``s:

    echo a; echo b          two foreground commands
    make && echo done       ``make`` is marked ``conditional_next``
    long_job & echo now     ``long_job`` runs in the background
    parallel: a; b; c       one ParallelGroup with three members

Each line is tokenized on its own and lines are emitted in order.  Produced
text is never parsed again.
"""

from __future__ import annotations

import re

from syndes_engine.protocol.models import CommandItem, ParallelGroup, SingleCommand

_PARALLEL_PREFIX = re.compile(r"^parallel(?:\s*:|\s+)", re.IGNORECASE)


class CommandParser:
    """Stateless tokenizer for the command language."""

    def parse(self, raw: str) -> list[CommandItem]:
        items: list[CommandItem] = []
        for line in raw.splitlines():
            line = line.strip()
            if not line:
                continue
            if _PARALLEL_PREFIX.match(line):
                group = self._parse_parallel(line)
                if group is not None:
                    items.append(group)
                continue
            items.extend(self._parse_sequence(line))
        return items

    def _parse_parallel(self, line: str) -> ParallelGroup | None:
        rest = _PARALLEL_PREFIX.sub("", line, count=1).strip().lstrip(":").strip()
        members = tuple(part.strip() for part in rest.split(";") if part.strip())
        if not members:
            return None
        return ParallelGroup(members)

    def _parse_sequence(self, line: str) -> list[SingleCommand]:
        items: list[SingleCommand] = []
        buf: list[str] = []

        def flush(conditional_next: bool = False, background: bool = False) -> None:
            token = "".join(buf).strip()
            buf.clear()
            if not token:
                return
            if background:
                # A bare "&" separator: normalise so from_token strips it.
                token = f"{token} &"
            items.append(SingleCommand.from_token(token, conditional_next=conditional_next))

        i = 0
        n = len(line)
        while i < n:
            ch = line[i]
            if line.startswith("&&", i):
                flush(conditional_next=True)
                i += 2
            elif ch == ";":
                flush()
                i += 1
            elif ch == "&" and self._is_background_separator(line, i):
                flush(background=True)
                i += 1
            else:
                buf.append(ch)
                i += 1
        flush()
        return items

    @staticmethod
    def _is_background_separator(line: str, index: int) -> bool:
        """A single ``&`` between whitespace (or at end of line) ends a command."""
        before = line[index - 1] if index > 0 else ""
        after = line[index + 1] if index + 1 < len(line) else ""
        if not before.isspace():
            return False
        # Trailing "&" is kept in the token and stripped by SingleCommand.
        return after != "" and after.isspace()
