"""Duologue - autonomous conversations between two AI personas.

Duologue drives a turn-based exchange between two configurable personas
on top of a locally served model, keeps the exchange in a bounded
append-only transcript and renders or exports it on demand.

Key modules:

- :mod:`duologue.conversation` - Transcript ledger, persona registry, analytics and turn scheduler
- :mod:`duologue.llm` - Generation backend protocol and the Ollama adapter
- :mod:`duologue.config` - YAML configuration loading and validation
- :mod:`duologue.cli` - Typer command-line interface with rich rendering
"""

__version__ = "0.1.0"
