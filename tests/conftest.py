"""Shared fixtures: build analysis sessions from inline plugin sources."""
import textwrap
from pathlib import Path

import pytest

from src.analyzer.extractor import node_text
from src.analyzer.hook_registry import HookRegistries
from src.analyzer.pipeline import AnalysisSession
from src.analyzer.program import Program


FIXTURES_DIR = Path(__file__).parent / 'fixtures'


def _build_session(source, registries=None, path='plugin.py', **kwargs) -> AnalysisSession:
    if isinstance(source, dict):
        sources = {name: textwrap.dedent(text) for name, text in source.items()}
    else:
        sources = {path: textwrap.dedent(source)}
    return AnalysisSession(Program.from_sources(sources), registries or HookRegistries.empty(), **kwargs)


def _find_node(program: Program, node_type: str, text: str):
    """First node of ``node_type`` whose source text is ``text``, with its unit."""
    for unit in program.units:
        stack = [unit.root]
        while stack:
            current = stack.pop()
            if current.type == node_type and node_text(current) == text:
                return current, unit
            stack.extend(reversed(current.children))
    raise AssertionError(f"No {node_type} node with text {text!r}")


def _declaration(session: AnalysisSession, display_name: str):
    """Declaration for ``Class.method``."""
    matches = [d for d in session.declarations if d.symbol is not None and d.symbol.display_name == display_name]
    assert matches, f"No declaration {display_name}; have {[d.name for d in session.declarations]}"
    return matches[-1]


@pytest.fixture
def make_session():
    return _build_session


@pytest.fixture
def find_node():
    return _find_node


@pytest.fixture
def declaration_of():
    return _declaration


@pytest.fixture
def fixtures_dir():
    return FIXTURES_DIR
