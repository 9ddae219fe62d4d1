"""
Configuration for puzzle generation.
"""

import copy
import json
import os
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import yaml

from crossgen.exceptions import ConfigurationError


MIN_GRID_SIZE = 5
MAX_GRID_SIZE = 25
DEFAULT_AUTHOR = "Crossgen"


class Difficulty(Enum):
    """Target difficulty of a generated puzzle."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, s: str) -> 'Difficulty':
        """Create Difficulty from string."""
        for difficulty in cls:
            if difficulty.value == str(s).strip().lower():
                return difficulty
        raise ConfigurationError(
            f"unknown difficulty '{s}' (expected one of: {', '.join(d.value for d in cls)})"
        )


@dataclass
class GenerationConfig:
    """A single puzzle generation request."""
    size: int = 15
    difficulty: Difficulty = Difficulty.MEDIUM
    seed: Optional[int] = None
    min_score: int = 50
    max_retries: int = 100
    title: str = ""
    author: str = ""
    theme: Optional[str] = None
    backtrack_limit: int = 20000
    unique_words: bool = False
    block_pattern: Optional[List[str]] = field(default=None)

    _KEY_ALIASES = {
        'minScore': 'min_score',
        'maxRetries': 'max_retries',
        'backtrackLimit': 'backtrack_limit',
        'uniqueWords': 'unique_words',
        'blockPattern': 'block_pattern',
    }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GenerationConfig':
        """Build a config from a settings mapping.

        Accepts snake_case or camelCase keys; unknown keys are rejected.
        """
        known = set(cls.__dataclass_fields__)
        values = {}
        for key, value in data.items():
            name = cls._KEY_ALIASES.get(key, key)
            if name not in known or name.startswith('_'):
                raise ConfigurationError(f"unknown generation setting '{key}'")
            if value is not None:
                values[name] = value

        if isinstance(values.get('difficulty'), str):
            values['difficulty'] = Difficulty.from_string(values['difficulty'])

        return cls(**values)

    def validate(self):
        """Check the request before any work is done.

        Raises:
            ConfigurationError: On the first invalid setting
        """
        if isinstance(self.difficulty, str):
            self.difficulty = Difficulty.from_string(self.difficulty)

        if not isinstance(self.size, int) or isinstance(self.size, bool):
            raise ConfigurationError(f"size must be an integer, got {self.size!r}")
        if not MIN_GRID_SIZE <= self.size <= MAX_GRID_SIZE:
            raise ConfigurationError(
                f"size must be between {MIN_GRID_SIZE} and {MAX_GRID_SIZE}, got {self.size}"
            )
        if not isinstance(self.difficulty, Difficulty):
            raise ConfigurationError(f"unknown difficulty {self.difficulty!r}")
        if not isinstance(self.min_score, int) or isinstance(self.min_score, bool):
            raise ConfigurationError(f"min_score must be an integer, got {self.min_score!r}")
        if not isinstance(self.max_retries, int) or self.max_retries < 1:
            raise ConfigurationError(f"max_retries must be at least 1, got {self.max_retries!r}")
        if not isinstance(self.backtrack_limit, int) or self.backtrack_limit < 1:
            raise ConfigurationError(
                f"backtrack_limit must be at least 1, got {self.backtrack_limit!r}"
            )
        if self.seed is not None and not isinstance(self.seed, int):
            raise ConfigurationError(f"seed must be an integer, got {self.seed!r}")

        if self.block_pattern is not None:
            rows = list(self.block_pattern)
            if len(rows) != self.size or any(len(row) != self.size for row in rows):
                raise ConfigurationError(
                    f"block pattern must be {self.size} rows of {self.size} characters"
                )

    def with_defaults(self, now: Optional[datetime] = None) -> 'GenerationConfig':
        """Copy with title, author and seed filled in."""
        now = now or datetime.now()
        return replace(
            self,
            title=self.title or f"Crossword Puzzle - {now.strftime('%Y-%m-%d %H:%M:%S')}",
            author=self.author or DEFAULT_AUTHOR,
            seed=self.seed if self.seed is not None else int(now.timestamp() * 1000),
        )


DEFAULT_SETTINGS: Dict[str, Any] = {
    'generation': {
        'size': 15,
        'difficulty': 'medium',
        'seed': None,
        'min_score': 50,
        'max_retries': 100,
        'backtrack_limit': 20000,
        'unique_words': False,
        'title': '',
        'author': '',
        'theme': None,
        'block_pattern': None,
    },
    'wordlists': {
        'primary': 'data/wordlist.txt',
    },
    'clues': {
        'database': None,
    },
    'export': {
        'formats': ['json', 'puz', 'ipuz'],
        'output_dir': 'output',
    },
    'batch': {
        'count': 1,
        'workers': 4,
        'timeout_seconds': None,
    },
    'logging': {
        'level': 'INFO',
        'file': None,
        'trace_file': None,
    },
}


def merge_config(default: Dict[str, Any], user: Dict[str, Any]):
    """Deep-merge user settings into default, in place."""
    for key, value in user.items():
        if key in default and isinstance(default[key], dict) and isinstance(value, dict):
            merge_config(default[key], value)
        else:
            default[key] = value


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load settings from a YAML or JSON file merged over the defaults."""
    config = copy.deepcopy(DEFAULT_SETTINGS)

    if config_path:
        if not os.path.exists(config_path):
            raise ConfigurationError(f"config file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            if config_path.endswith('.yaml') or config_path.endswith('.yml'):
                user_config = yaml.safe_load(f)
            else:
                user_config = json.load(f)

        if user_config:
            if not isinstance(user_config, dict):
                raise ConfigurationError(f"config file {config_path} must contain a mapping")
            merge_config(config, user_config)

    return config
