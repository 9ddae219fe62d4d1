"""
Clue provider interfaces for crossword puzzles.
The engine never writes clues itself; it asks a provider for text keyed by entry.
"""

import json
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

import yaml

from crossgen.config import Difficulty
from crossgen.exceptions import ClueProviderError
from crossgen.grid import Direction


MAX_WORDS_PER_BATCH = 20


def clue_key(number: int, direction: Direction) -> str:
    """Key identifying an entry's clue, e.g. ``12-down``."""
    return f"{number}-{direction.value}"


@dataclass(frozen=True)
class ClueRequest:
    """An answered entry waiting for clue text."""
    key: str
    number: int
    direction: Direction
    answer: str
    length: int


class ClueProvider(Protocol):
    def generate_clues(self, requests: Sequence[ClueRequest]) -> Dict[str, str]:
        """Return mapping from clue key to clue text.

        Keys may be missing. Raise ClueProviderError on failure.
        """


@dataclass
class ClueEntry:
    """A stored clue for a word."""
    word: str
    clue: str
    difficulty: Difficulty = Difficulty.MEDIUM
    source: str = "file"
    confidence: float = 1.0

    def __post_init__(self):
        self.word = self.word.upper()


class ClueDatabase:
    """Database of clues for words."""

    def __init__(self):
        self.clues: Dict[str, List[ClueEntry]] = defaultdict(list)
        self.logger = logging.getLogger(__name__)

    def add_clue(self, clue_entry: ClueEntry):
        """Add a clue to the database."""
        self.clues[clue_entry.word].append(clue_entry)

    def get_clues(self, word: str) -> List[ClueEntry]:
        """Get all clues for a word."""
        return list(self.clues.get(word.upper(), []))

    def get_best_clue(self, word: str,
                      difficulty: Difficulty = Difficulty.MEDIUM) -> Optional[ClueEntry]:
        """Highest-confidence clue, preferring the requested difficulty."""
        candidates = self.get_clues(word)
        if not candidates:
            return None

        filtered = [c for c in candidates if c.difficulty == difficulty] or candidates
        return max(filtered, key=lambda c: c.confidence)

    def load_from_file(self, file_path: str):
        """Load clues from a JSON or YAML file.

        The file holds ``{"clues": [{"word": ..., "clue": ..., "difficulty": ...}]}``.

        Raises:
            ClueProviderError: If the file cannot be read or is malformed
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                if file_path.endswith(('.yaml', '.yml')):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ClueProviderError(f"cannot read clue database {file_path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get('clues'), list):
            raise ClueProviderError(f"clue database {file_path} has no 'clues' list")

        for i, clue_data in enumerate(data['clues']):
            try:
                self.add_clue(ClueEntry(
                    word=clue_data['word'],
                    clue=clue_data['clue'],
                    difficulty=Difficulty(clue_data.get('difficulty', 'medium')),
                    source=clue_data.get('source', 'file'),
                    confidence=float(clue_data.get('confidence', 1.0)),
                ))
            except (KeyError, TypeError, ValueError) as e:
                raise ClueProviderError(f"bad clue record #{i} in {file_path}: {e}") from e

        self.logger.info(f"Loaded {len(self)} clues from {file_path}")

    def save_to_file(self, file_path: str):
        """Save clues to a JSON file."""
        all_clues = [
            {
                'word': clue.word,
                'clue': clue.clue,
                'difficulty': clue.difficulty.value,
                'source': clue.source,
                'confidence': clue.confidence,
            }
            for clue_list in self.clues.values()
            for clue in clue_list
        ]
        data = {
            'metadata': {'total_clues': len(all_clues), 'unique_words': len(self.clues)},
            'clues': all_clues,
        }
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        self.logger.info(f"Saved {len(all_clues)} clues to {file_path}")

    def get_statistics(self) -> Dict[str, Any]:
        """Get clue database statistics."""
        by_difficulty: Dict[str, int] = defaultdict(int)
        for clue_list in self.clues.values():
            for clue in clue_list:
                by_difficulty[clue.difficulty.value] += 1
        return {
            'total_clues': len(self),
            'unique_words': len(self.clues),
            'by_difficulty': dict(by_difficulty),
        }

    def __len__(self) -> int:
        return sum(len(clues) for clues in self.clues.values())


class DatabaseClueProvider:
    """Looks every answer up in a ClueDatabase."""

    def __init__(self, database: ClueDatabase, difficulty: Difficulty = Difficulty.MEDIUM):
        self.database = database
        self.difficulty = difficulty

    def generate_clues(self, requests: Sequence[ClueRequest]) -> Dict[str, str]:
        clues = {}
        for request in requests:
            entry = self.database.get_best_clue(request.answer, self.difficulty)
            if entry:
                clues[request.key] = entry.clue
        return clues


DIFFICULTY_GUIDELINES = {
    'easy': (
        "Guidelines for EASY clues:\n"
        "- Use straightforward definitions\n"
        "- Avoid obscure references\n"
        "- Focus on common knowledge and everyday vocabulary\n"
        "- Example: \"Feline pet\" for CAT"
    ),
    'medium': (
        "Guidelines for MEDIUM clues:\n"
        "- Use moderate wordplay and misdirection\n"
        "- Include some cultural references\n"
        "- Mix definitions with clever hints\n"
        "- Example: \"Purring companion\" for CAT"
    ),
    'hard': (
        "Guidelines for HARD clues:\n"
        "- Use advanced wordplay and double meanings\n"
        "- Include specialized knowledge\n"
        "- Anagrams, hidden words and misdirection are welcome\n"
        "- Example: \"Tomcat's kin scattered? Absurd!\" for CAT"
    ),
}


def guideline_level(difficulty: Difficulty) -> str:
    """Prompt guideline level; expert puzzles use the hard guidelines."""
    if difficulty == Difficulty.EXPERT:
        return 'hard'
    return difficulty.value


def build_prompt(words: Sequence[str], difficulty: Difficulty) -> str:
    """Build a clue-writing prompt for up to MAX_WORDS_PER_BATCH words."""
    if not words:
        raise ValueError("no words to clue")
    if len(words) > MAX_WORDS_PER_BATCH:
        raise ValueError(f"too many words: {len(words)} (max {MAX_WORDS_PER_BATCH})")

    level = guideline_level(difficulty)
    example = json.dumps({'clues': {words[0]: f"Example clue for {words[0]}"}}, indent=2)

    return (
        "You are a crossword puzzle clue writer. "
        "Generate crossword clues for the following words.\n\n"
        f"Difficulty: {level}\n"
        f"{DIFFICULTY_GUIDELINES[level]}\n\n"
        f"Words: {', '.join(words)}\n\n"
        "Requirements:\n"
        "- Generate exactly one clue for each word\n"
        "- Keep clues concise (typically 3-10 words)\n"
        "- Avoid using the answer word or obvious derivatives in the clue\n\n"
        "Respond with a JSON object in the following format:\n"
        f"{example}\n\n"
        "Return ONLY the JSON object with all clues filled in."
    )


def parse_clue_response(response_text: str, requested_words: Sequence[str]) -> Dict[str, str]:
    """Parse ``{"clues": {WORD: clue}}`` from a model response.

    Raises:
        ClueProviderError: If the JSON is malformed or a word is missing
    """
    text = response_text.strip()
    for prefix in ('```json', '```'):
        if text.startswith(prefix):
            text = text[len(prefix):]
            break
    if text.endswith('```'):
        text = text[:-3]
    text = text.strip()

    try:
        data = json.loads(text)
    except ValueError as e:
        raise ClueProviderError(f"failed to parse clue response: {e}") from e

    clues = data.get('clues') if isinstance(data, dict) else None
    if not isinstance(clues, dict) or not clues:
        raise ClueProviderError("response contains no clues")

    clues = {str(word).upper(): str(clue) for word, clue in clues.items()}
    missing = [word for word in requested_words if word not in clues]
    if missing:
        raise ClueProviderError(f"missing clues for words: {', '.join(missing)}")
    return clues


class PromptClueProvider:
    """Clues from a text-completion callable, batched and cached.

    ``complete`` receives a prompt and returns the model's raw reply. Answers
    already present in the cache are never sent again.
    """

    def __init__(self, complete: Callable[[str], str],
                 difficulty: Difficulty = Difficulty.MEDIUM,
                 cache: Optional[ClueDatabase] = None,
                 batch_size: int = MAX_WORDS_PER_BATCH):
        self.complete = complete
        self.difficulty = difficulty
        self.cache = cache if cache is not None else ClueDatabase()
        self.batch_size = min(batch_size, MAX_WORDS_PER_BATCH)
        self.logger = logging.getLogger(__name__)

    def generate_clues(self, requests: Sequence[ClueRequest]) -> Dict[str, str]:
        answers = list(dict.fromkeys(request.answer for request in requests))
        uncached = [word for word in answers if not self.cache.get_clues(word)]
        self.logger.info(f"Clue cache: {len(answers) - len(uncached)} hits, {len(uncached)} misses")

        for start in range(0, len(uncached), self.batch_size):
            batch = uncached[start:start + self.batch_size]
            prompt = build_prompt(batch, self.difficulty)
            try:
                reply = self.complete(prompt)
            except Exception as e:
                raise ClueProviderError(f"clue completion failed: {e}") from e

            for word, text in parse_clue_response(reply, batch).items():
                self.cache.add_clue(ClueEntry(word, text, self.difficulty, source='model'))

        clues = {}
        for request in requests:
            entry = self.cache.get_best_clue(request.answer, self.difficulty)
            if entry:
                clues[request.key] = entry.clue
        return clues


def create_sample_clue_database() -> ClueDatabase:
    """Create a sample clue database matching the sample corpus."""
    db = ClueDatabase()
    sample_clues = [
        ("AREA", "Region"), ("ERA", "Historical period"), ("ARE", "Exist"),
        ("EAR", "Hearing organ"), ("ART", "Gallery display"), ("RAT", "Rodent"),
        ("TEA", "Afternoon brew"), ("EAT", "Dine"), ("ONE", "Single"),
        ("TEN", "Perfect score"), ("NET", "Tennis court divider"), ("SEA", "Ocean"),
        ("ICE", "Frozen water"), ("STAR", "Celebrity"), ("RATE", "Speed"),
        ("TEAR", "Rip"), ("NOTE", "Memo"), ("TONE", "Pitch"), ("STONE", "Pebble"),
        ("ALERT", "Watchful"), ("LATER", "Afterwards"), ("ARENA", "Stadium"),
        ("STARE", "Gaze fixedly"),
    ]
    for word, clue in sample_clues:
        db.add_clue(ClueEntry(word, clue, Difficulty.MEDIUM, source="sample", confidence=0.9))
    return db
