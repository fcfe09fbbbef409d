"""
Run spaCy named-entity recognition over a transcript file.

Usage:
    python -m archive_core.nlp.spacy_runner <transcript.txt> <output.csv> [--model en_core_web_sm]

Output is a CSV with header 'text,start,end,label', one row per entity,
where start/end are character offsets into the transcript.
"""

import argparse
import csv
import sys
from pathlib import Path


def recognize(text: str, model: str):
    """Yield (text, start, end, label) for each entity spaCy finds."""
    import spacy

    nlp = spacy.load(model)
    doc = nlp(text)
    for ent in doc.ents:
        yield ent.text.replace('\n', ' ').strip(), ent.start_char, ent.end_char, ent.label_


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="spaCy named-entity recognition for transcripts")
    parser.add_argument('input', help='Transcript text file')
    parser.add_argument('output', help='CSV file to write')
    parser.add_argument('--model', default='en_core_web_sm', help='spaCy model name')
    args = parser.parse_args(argv)

    text = Path(args.input).read_text(encoding='utf-8')

    try:
        rows = list(recognize(text, args.model))
    except OSError as e:
        print(f"Could not load spaCy model '{args.model}': {e}", file=sys.stderr)
        return 1

    with open(args.output, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(['text', 'start', 'end', 'label'])
        writer.writerows(rows)

    print(f"{len(rows)} entities written to {args.output}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
