"""Trigger scripts — Script parser.

Script format::

    # metadata: code1
    # name: nightly
    if time 23:30
    - echo backup
    - sh ./backup.sh
    fi
    wait:10 sec
    - echo ten seconds later
    fi
    echo started

Header lines carry the marker (``#``) and are ``key: value`` or ``key value``;
the header ends at the first line without the marker.  One of the module
keys (``metadata`` / ``modules``) must list the trigger runtimes,
comma-separated.

In the body, an ``if ...`` or ``wait ...`` line opens a block whose actions
follow (``- `` prefix optional) until the terminator line (``fi``).  Any
other line is a single unconditional block.  Marker lines in the body are
comments.
"""

from __future__ import annotations

import re

from syndes_engine.config import ScriptConfig
from syndes_engine.exceptions import ScriptHeaderError
from syndes_engine.triggers.models import ParsedScript, TriggerBlock

_BLOCK_OPENER = re.compile(r"^(if\s|wait\b)", re.IGNORECASE)


class ScriptParser:
    def __init__(self, settings: ScriptConfig | None = None) -> None:
        self._settings = settings or ScriptConfig()

    def parse(self, text: str) -> ParsedScript:
        lines = text.splitlines()
        header, body_start = self._parse_header(lines)
        modules = self._modules(header)
        blocks = self._parse_body(lines[body_start:])
        return ParsedScript(header=header, modules=modules, blocks=blocks)

    def _parse_header(self, lines: list[str]) -> tuple[dict[str, str], int]:
        marker = self._settings.header_marker
        header: dict[str, str] = {}
        for index, raw in enumerate(lines):
            line = raw.strip()
            if not line:
                continue
            if not line.startswith(marker):
                return header, index
            content = line[len(marker):].strip()
            if ":" in content:
                key, value = content.split(":", 1)
                header[key.strip().lower()] = value.strip()
            else:
                parts = content.split(None, 1)
                if len(parts) == 2:
                    header[parts[0].lower()] = parts[1].strip()
        return header, len(lines)

    def _modules(self, header: dict[str, str]) -> list[str]:
        listing = ""
        for key in self._settings.module_keys:
            if header.get(key.lower()):
                listing = header[key.lower()]
                break
        if not listing:
            keys = " or ".join(f"{self._settings.header_marker}{k}" for k in self._settings.module_keys)
            raise ScriptHeaderError(f"no {keys} specified")
        return [m.strip() for m in listing.split(",") if m.strip()]

    def _parse_body(self, lines: list[str]) -> list[TriggerBlock]:
        marker = self._settings.header_marker
        terminator = self._settings.block_terminator.lower()
        body = [l.strip() for l in lines if l.strip() and not l.strip().startswith(marker)]

        blocks: list[TriggerBlock] = []
        i = 0
        while i < len(body):
            line = body[i]
            if _BLOCK_OPENER.match(line):
                actions: list[str] = []
                i += 1
                while i < len(body) and body[i].lower() != terminator:
                    actions.append(_strip_bullet(body[i]))
                    i += 1
                if i < len(body):
                    i += 1  # skip terminator
                blocks.append(TriggerBlock(line, tuple(a for a in actions if a)))
            else:
                blocks.append(TriggerBlock(_strip_bullet(line)))
                i += 1
        return blocks


def _strip_bullet(line: str) -> str:
    return line[2:].strip() if line.startswith("- ") else line
