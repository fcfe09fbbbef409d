"""
Readers for recognizer output and merging of spaCy and Stanford entities.
"""

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from archive_core.utils.logger import setup_worker_logger

logger = setup_worker_logger('entities')

ORGANIZATION = "ORGANIZATION"
LOCATION = "LOCATION"

# Recognizer labels folded into the two kinds the resolvers handle
_LABEL_KINDS = {
    'ORG': ORGANIZATION,
    'ORGANIZATION': ORGANIZATION,
    'GPE': LOCATION,
    'LOC': LOCATION,
    'LOCATION': LOCATION,
}


@dataclass
class RecognizedEntity:
    text: str
    label: str
    start: Optional[int] = None
    end: Optional[int] = None
    source: str = ""

    @property
    def kind(self) -> Optional[str]:
        return _LABEL_KINDS.get(self.label.upper())


def read_spacy_entities(path: Union[str, Path]) -> List[RecognizedEntity]:
    """Read the spaCy runner CSV (text,start,end,label)."""
    entities = []
    with open(path, newline='', encoding='utf-8') as f:
        reader = csv.reader(f)
        next(reader, None)
        for row in reader:
            if len(row) != 4 or not row[0].strip():
                logger.warning(f"Skipping malformed spaCy line: {row}")
                continue
            try:
                start, end = int(row[1]), int(row[2])
            except ValueError:
                start, end = None, None
            entities.append(RecognizedEntity(row[0].strip(), row[3].strip(), start, end, 'spacy'))
    return entities


def read_stanford_entities(path: Union[str, Path]) -> List[RecognizedEntity]:
    """Read Stanford NER tabbed-entity output (entity<TAB>label[<TAB>trailing text])."""
    entities = []
    with open(path, encoding='utf-8') as f:
        for line in f:
            parts = line.rstrip('\n').split('\t')
            if len(parts) < 2:
                continue
            text, label = parts[0].strip(), parts[1].strip()
            if not text or not label or label == 'O':
                continue
            entities.append(RecognizedEntity(text, label, source='stanford'))
    return entities


def merge_entities(stanford: List[RecognizedEntity], spacy: List[RecognizedEntity]) -> List[RecognizedEntity]:
    """Organizations and locations found by either recognizer, one per (kind, text).

    Stanford entries come first; a spaCy entry is added when Stanford did not
    report the same text with the same kind.
    """
    merged = []
    seen = set()
    for entity in list(stanford) + list(spacy):
        kind = entity.kind
        if kind is None:
            continue
        key = (kind, entity.text.lower())
        if key in seen:
            continue
        seen.add(key)
        merged.append(entity)
    return merged
