"""Syndes Engine — command and trigger-script execution engine.

Turns raw command text into schedulable items, runs them on a cooperative
queue (sequential, parallel and background), evaluates if/else chains
against execution history, repeats commands with cycles, and runs trigger
scripts whose conditions (wall-clock time, delay, file existence, file
size) schedule or immediately run action lists.

Layers (bottom to top):
    1. Protocol      — command items, tokenizer, unit parsing
    2. Orchestration — queue processor, condition chain, cycles, registry
    3. Triggers      — condition runtimes, script parser, sessions
    4. Backends      — command executors tried in priority order
    5. API / CLI     — FastAPI server and typer command line
"""

__version__ = "0.1.0"

from syndes_engine.engine import Engine
from syndes_engine.protocol.models import ParallelGroup, SingleCommand

__all__ = [
    "__version__",
    "Engine",
    "ParallelGroup",
    "SingleCommand",
]
