"""Resolve recognized entities in the transcript to canonical named entities."""

from pathlib import Path

from archive_core.nlp.entities import merge_entities, read_spacy_entities, read_stanford_entities
from archive_core.nlp.lookups import EntityLookups
from archive_core.nlp.resolvers import resolve_all
from archive_core.processing.outcome import TaskOutcome
from archive_core.utils.logger import setup_worker_logger

from .base import AbstractTask

logger = setup_worker_logger('tasks')


class EntityResolutionTask(AbstractTask):
    name = "EntityResolutionTask"
    option = "entities"

    @property
    def spacy_file(self) -> Path:
        return self.data_path / f"{self.segment_id}.spacy.csv"

    @property
    def stanford_file(self) -> Path:
        return self.data_path / f"{self.segment_id}.stanford.tsv"

    @property
    def lookups(self) -> EntityLookups:
        if self.context.entity_lookups is None:
            self.context.entity_lookups = EntityLookups.from_config(self.config)
        return self.context.entity_lookups

    def check_requirements(self) -> TaskOutcome:
        transcript = self.check_transcript()
        if transcript is not None:
            return transcript
        if not self.spacy_file.exists():
            return TaskOutcome.deferred(f"Could not find required input file {self.spacy_file}.")
        if not self.stanford_file.exists():
            return TaskOutcome.deferred(f"Could not find required input file {self.stanford_file}.")
        return TaskOutcome.success()

    def purge(self) -> None:
        logger.info("Deleting associated entities from the database.")
        self.db.delete_named_entities(self.segment_id)

    def run(self) -> TaskOutcome:
        spacy_entities = read_spacy_entities(self.spacy_file)
        stanford_entities = read_stanford_entities(self.stanford_file)
        merged = merge_entities(stanford_entities, spacy_entities)

        resolved = resolve_all(spacy_entities, merged, self.segment.transcript_text, self.lookups)

        for entity_type, value in resolved:
            if not self.db.insert_named_entity(self.segment_id, entity_type.value, value):
                return TaskOutcome.failed(f"Failed to store {entity_type.value} entity '{value}'.")

        logger.info(f"{len(resolved)} named entities stored for segment {self.segment_id}.")
        return TaskOutcome.success()
