"""Unit tests — Trigger script parser."""

from __future__ import annotations

import textwrap

import pytest

from syndes_engine.config import ScriptConfig
from syndes_engine.exceptions import ScriptHeaderError
from syndes_engine.triggers.models import TriggerBlock
from syndes_engine.triggers.script import ScriptParser

NIGHTLY = textwrap.dedent(
    """\
    # metadata: code1
    # name nightly
    if time 23:30
    - echo backup
    - sh ./backup.sh
    fi
    # a comment in the body
    wait:10 sec
    - echo ten seconds later
    fi
    echo started
    """
)


@pytest.fixture
def parser() -> ScriptParser:
    return ScriptParser()


@pytest.mark.unit
class TestHeader:
    def test_both_header_forms(self, parser: ScriptParser) -> None:
        script = parser.parse(NIGHTLY)
        assert script.header == {"metadata": "code1", "name": "nightly"}
        assert script.modules == ["code1"]

    def test_module_list(self, parser: ScriptParser) -> None:
        script = parser.parse("#modules: code1, other\necho hi")
        assert script.modules == ["code1", "other"]

    def test_missing_modules(self, parser: ScriptParser) -> None:
        with pytest.raises(ScriptHeaderError) as exc_info:
            parser.parse("# name: nothing\necho hi")
        assert exc_info.value.message == "no #metadata or #modules specified"

    def test_custom_marker(self) -> None:
        parser = ScriptParser(ScriptConfig(header_marker="//"))
        assert parser.parse("// metadata: code1\necho hi").modules == ["code1"]


@pytest.mark.unit
class TestBody:
    def test_blocks(self, parser: ScriptParser) -> None:
        assert parser.parse(NIGHTLY).blocks == [
            TriggerBlock("if time 23:30", ("echo backup", "sh ./backup.sh")),
            TriggerBlock("wait:10 sec", ("echo ten seconds later",)),
            TriggerBlock("echo started"),
        ]

    def test_unterminated_block_takes_the_rest(self, parser: ScriptParser) -> None:
        blocks = parser.parse("# metadata: code1\nif exists a\necho one\necho two").blocks
        assert blocks == [TriggerBlock("if exists a", ("echo one", "echo two"))]

    def test_word_starting_with_wait_is_a_command(self, parser: ScriptParser) -> None:
        blocks = parser.parse("# metadata: code1\nwaiting_room\n- echo bullet").blocks
        assert blocks == [TriggerBlock("waiting_room"), TriggerBlock("echo bullet")]

    def test_header_only(self, parser: ScriptParser) -> None:
        assert parser.parse("# metadata: code1").blocks == []
