"""The set of parsed source units that make up one analysis pass."""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Union

from tree_sitter import Node, Tree

from .parser import LanguageParser


@dataclass(frozen=True)
class SourceUnit:
    """One parsed file."""
    path: str
    module: str
    tree: Tree = field(repr=False, compare=False)

    @property
    def root(self) -> Node:
        return self.tree.root_node


def module_name_for(path: Union[str, Path], root: Union[str, Path, None] = None) -> str:
    """Dotted module name for a file path (``plugins/economics.py`` -> ``plugins.economics``)."""
    path = Path(path)
    if root is not None:
        try:
            path = path.relative_to(root)
        except ValueError:
            pass
    parts = list(path.with_suffix('').parts)
    if parts and parts[-1] == '__init__':
        parts = parts[:-1]
    return '.'.join(parts) or path.stem


class Program:
    """Immutable collection of source units, ordered by path."""

    # Directories never scanned (virtualenvs, caches, vendored code)
    EXCLUDED_DIRS = {
        'venv', '.venv', 'env', '.virtualenv',
        'vendor', 'extern', 'third_party', '_internal',
        '.tox', 'site-packages', 'dist', 'build', '__pycache__',
        'node_modules', '.git',
    }

    def __init__(self, units: Iterable[SourceUnit]):
        self.units = tuple(sorted(units, key=lambda unit: unit.path))

    def __len__(self) -> int:
        return len(self.units)

    @classmethod
    def from_sources(cls, sources: Dict[str, Union[str, bytes]]) -> 'Program':
        """Build a program from in-memory sources keyed by file name.

        Args:
            sources: Mapping of file path -> source text or bytes

        Returns:
            Program with one unit per entry
        """
        parser = LanguageParser('python')
        units = []
        for path, source in sources.items():
            if isinstance(source, str):
                source = source.encode('utf-8')
            units.append(SourceUnit(path=path, module=module_name_for(path), tree=parser.parse_source(source)))
        return cls(units)

    @classmethod
    def from_directory(cls, root: Union[str, Path]) -> 'Program':
        """Parse every supported file under ``root``.

        Files that cannot be read are skipped. A single file path is accepted too.
        """
        root = Path(root)
        if root.is_file():
            candidates = [root]
            base = root.parent
        else:
            candidates = sorted(root.rglob('*.py'))
            base = root

        units: List[SourceUnit] = []
        for file_path in candidates:
            if any(excluded in file_path.relative_to(base).parts for excluded in cls.EXCLUDED_DIRS):
                continue
            parser = LanguageParser.from_file_extension(file_path)
            if parser is None:
                continue
            tree = parser.parse_file(file_path)
            if tree is None:
                continue
            units.append(SourceUnit(
                path=file_path.relative_to(base).as_posix(),
                module=module_name_for(file_path, base),
                tree=tree,
            ))
        return cls(units)
