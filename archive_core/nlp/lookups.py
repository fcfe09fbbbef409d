"""
Lookup tables used to resolve recognized entities to canonical identifiers.

EntityLookups is loaded once per processing run and handed to the entity
resolution task. Each table is read from a tab-separated file with one
header row:

    us_states.tsv       alpha<TAB>name<TAB>aliases (comma separated)
    countries.tsv       code<TAB>name<TAB>aliases (comma separated)
    organizations.tsv   org_id<TAB>name<TAB>aliases (comma separated)

Names are matched case-insensitively.
"""

from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from archive_core.utils.logger import setup_worker_logger
from archive_core.utils.paths import resolve_path

logger = setup_worker_logger('lookups')


def _read_rows(path: Path) -> Iterator[List[str]]:
    with open(path, encoding='utf-8') as f:
        next(f, None)
        for line in f:
            line = line.rstrip('\n')
            if not line.strip() or line.startswith('#'):
                continue
            yield line.split('\t')


def normalize_name(name: str) -> str:
    """Lower-case a name and drop surrounding punctuation and a leading 'the'."""
    value = ' '.join(name.strip().strip('.,;:"\'()[]').split()).lower()
    if value.startswith('the '):
        value = value[4:]
    return value


class EntityLookups:
    """Read-through cache of the state, country and organization tables."""

    def __init__(self, data_path: Union[str, Path]):
        self.data_path = Path(data_path)
        self._states: Optional[Dict[str, str]] = None
        self._countries: Optional[Dict[str, str]] = None
        self._organizations: Optional[Dict[str, str]] = None

    @classmethod
    def from_config(cls, config: Dict) -> 'EntityLookups':
        return cls(resolve_path(config.get('entity_resolution', {}).get('data_path', 'data/entities')))

    def _load_aliased(self, filename: str) -> Dict[str, str]:
        """name/alias -> value table from a value<TAB>name<TAB>aliases file."""
        path = self.data_path / filename
        table: Dict[str, str] = {}
        if not path.exists():
            logger.warning(f"Lookup file {path} not found; no entities of this kind will resolve.")
            return table
        for row in _read_rows(path):
            if len(row) < 2:
                continue
            value = row[0].strip()
            names = [row[1]]
            if len(row) > 2 and row[2].strip():
                names += row[2].split(',')
            for name in names:
                key = normalize_name(name)
                if key:
                    table.setdefault(key, value)
        logger.info(f"Loaded {len(table)} names from {path}")
        return table

    @property
    def states(self) -> Dict[str, str]:
        if self._states is None:
            self._states = self._load_aliased('us_states.tsv')
            # Two-letter codes resolve to themselves
            for alpha in set(self._states.values()):
                self._states.setdefault(alpha.lower(), alpha)
        return self._states

    @property
    def countries(self) -> Dict[str, str]:
        if self._countries is None:
            self._countries = self._load_aliased('countries.tsv')
        return self._countries

    @property
    def organizations(self) -> Dict[str, str]:
        if self._organizations is None:
            self._organizations = self._load_aliased('organizations.tsv')
        return self._organizations

    def state_alpha(self, name: str) -> Optional[str]:
        return self.states.get(normalize_name(name))

    def country_code(self, name: str) -> Optional[str]:
        return self.countries.get(normalize_name(name))

    def organization_id(self, name: str) -> Optional[str]:
        return self.organizations.get(normalize_name(name))
