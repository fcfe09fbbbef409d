"""
Forced alignment of transcripts to segment audio using Gentle.

Gentle is run as an external command that prints its JSON result on
standard output. A default pass is run first; when some words could not
be located in the audio a conservative pass is run too and the better of
the two is kept.

Gentle word cases:
    success                  word aligned to audio
    not-found-in-audio       word in transcript but not located in audio
    not-found-in-transcript  sound in audio with no transcript word (disfluency)
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from archive_core.utils.logger import setup_worker_logger
from archive_core.utils.media_utils import MediaToolError, run_tool, split_command

logger = setup_worker_logger('alignment')

CASE_SUCCESS = "success"
CASE_NOT_FOUND_IN_AUDIO = "not-found-in-audio"
CASE_NOT_FOUND_IN_TRANSCRIPT = "not-found-in-transcript"


def analyze_words(words: Optional[List[Dict]]) -> Tuple[int, int]:
    """Count unaligned words and the longest consecutive run of them.

    Args:
        words: Gentle 'words' list; None means no narration was found

    Returns:
        (unaligned word count, maximum consecutive unaligned words)
    """
    if not words:
        return 0, 0

    unaligned = 0
    consecutive = 0
    max_consecutive = 0
    for word in words:
        case = word.get('case')
        if case == CASE_NOT_FOUND_IN_AUDIO:
            unaligned += 1
            consecutive += 1
            max_consecutive = max(max_consecutive, consecutive)
        elif case == CASE_NOT_FOUND_IN_TRANSCRIPT:
            logger.warning(f"Ignoring disfluency in alignment data: {word.get('word')}")
        else:
            if case != CASE_SUCCESS:
                logger.warning(f"Found unknown case in alignment data: {case}")
            consecutive = 0

    return unaligned, max_consecutive


def choose_alignment(default_pass: Dict, conservative_pass: Optional[Dict]) -> Tuple[Dict, str]:
    """Pick the better of two alignment results.

    Fewer unaligned words wins; a tie goes to the smaller maximum
    consecutive run, and a full tie to the default pass.

    Returns:
        (chosen result, 'default' or 'conservative')
    """
    if conservative_pass is None:
        return default_pass, 'default'

    unaligned1, max_run1 = analyze_words(default_pass.get('words'))
    unaligned2, max_run2 = analyze_words(conservative_pass.get('words'))

    if unaligned1 == unaligned2:
        logger.info("Unaligned words equivalent; selecting result set with least maximum consecutive words.")
        return (default_pass, 'default') if max_run1 <= max_run2 else (conservative_pass, 'conservative')

    logger.info("Selecting result set with fewest unaligned words.")
    return (default_pass, 'default') if unaligned1 < unaligned2 else (conservative_pass, 'conservative')


def to_transcript_sync(result: Dict) -> List[Dict]:
    """Compact word timings (milliseconds) for the aligned words of a result."""
    sync = []
    for word in result.get('words') or []:
        if word.get('case') != CASE_SUCCESS:
            continue
        try:
            sync.append({
                'word': word.get('word', ''),
                'start': int(round(float(word['start']) * 1000)),
                'end': int(round(float(word['end']) * 1000)),
            })
        except (KeyError, TypeError, ValueError):
            continue
    return sync


class GentleAligner:
    """Runs the configured Gentle command in default and conservative modes."""

    def __init__(self, command: Union[str, Sequence[str]], timeout: Optional[int] = None):
        self.command = split_command(command)
        self.timeout = timeout

    def run_pass(self, media_file: Path, transcript_file: Path, conservative: bool = False) -> Dict:
        """Run Gentle once and parse its JSON output.

        Raises:
            MediaToolError: If Gentle fails or prints something that is not JSON
        """
        cmd = list(self.command)
        if conservative:
            logger.info("Running Gentle with conservative settings.")
            cmd.append('--conservative')
        else:
            logger.info("Running Gentle with default settings.")
        cmd += [str(media_file), str(transcript_file)]

        output = run_tool(cmd, timeout=self.timeout)
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise MediaToolError(f"Gentle produced invalid JSON: {e}") from e

    def align(self, media_file: Path, transcript_file: Path) -> Dict:
        """Align a transcript, choosing between default and conservative passes."""
        default_pass = self.run_pass(media_file, transcript_file)
        unaligned, max_run = analyze_words(default_pass.get('words'))
        logger.info(f"Results: {unaligned} unaligned words with a maximum consecutive run of {max_run} words.")

        if unaligned == 0:
            return default_pass

        conservative_pass = self.run_pass(media_file, transcript_file, conservative=True)
        unaligned, max_run = analyze_words(conservative_pass.get('words'))
        logger.info(f"Results: {unaligned} unaligned words with a maximum consecutive run of {max_run} words.")

        result, label = choose_alignment(default_pass, conservative_pass)
        logger.info(f"Results from {label} pass selected.")
        return result
