import glob
import logging
import os
import re
from typing import List, Set

import pandas as pd

from .synonyms import split_synonyms

logger = logging.getLogger(__name__)

ANSWER_COLUMN = re.compile(r"^answer_(\d+)$")

DUMMY_CORPUS = [
    {
        "question": "Which city is known as the City of Light?",
        "answers": ["Paris|City of Light", "London", "Berlin", "Madrid"],
        "follow_up": "",
    },
    {
        "question": "The Great Wall of China is visible from the Moon with the naked eye.",
        "answers": ["False", "True"],
        "follow_up": "It is far too narrow to be seen from that distance.",
    },
    {
        "question": "Which planet is known as the Red Planet?",
        "answers": ["Mars", "Venus", "Jupiter", "Mercury"],
        "follow_up": "",
    },
    {
        "question": "What is the largest ocean on Earth?",
        "answers": ["Pacific|Pacific Ocean", "Atlantic", "Indian", "Arctic"],
        "follow_up": "",
    },
]


class CorpusManager:
    """Loads the question corpus and answers dictionary lookups against it.

    Each CSV file in the directory holds a ``question`` column, answer columns
    ``answer_1`` .. ``answer_n`` with the correct answer first, and an optional
    ``follow_up`` column.
    """

    def __init__(self, directory: str):
        self.directory = directory
        self.questions: List[str] = []
        self.answer_sets: List[List[str]] = []
        self.follow_ups: List[str] = []
        self.dictionary: Set[str] = set()

    def load_all(self):
        self.questions, self.answer_sets, self.follow_ups = [], [], []
        if not os.path.exists(self.directory):
            os.makedirs(self.directory)
            logger.warning(f"Created directory {self.directory}. Please add CSV files.")

        csv_files = sorted(glob.glob(os.path.join(self.directory, "*.csv")))
        for file_path in csv_files:
            try:
                df = pd.read_csv(
                    file_path, encoding="utf-8", dtype=str, keep_default_na=False
                )
            except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
                logger.error(f"Failed to load {file_path}: {e}")
                continue
            answer_columns = sorted(
                (c for c in df.columns if ANSWER_COLUMN.match(c)),
                key=lambda c: int(ANSWER_COLUMN.match(c).group(1)),
            )
            if "question" not in df.columns or not answer_columns:
                logger.error(f"Skipping {file_path}: Missing columns.")
                continue
            for row in df.to_dict("records"):
                self._add(
                    row["question"],
                    [row[c] for c in answer_columns],
                    row.get("follow_up", ""),
                )
            logger.info(f"Loaded {len(df)} questions from {file_path}")

        if not self.questions:
            logger.warning("No questions found. Loading dummy data.")
            for item in DUMMY_CORPUS:
                self._add(item["question"], item["answers"], item["follow_up"])

        self._build_dictionary()

    def _add(self, question: str, answers: List[str], follow_up: str):
        answers = [a.strip() for a in answers if a and a.strip()]
        question = (question or "").strip()
        if not question:
            return
        self.questions.append(question)
        self.answer_sets.append(answers)
        self.follow_ups.append((follow_up or "").strip())

    def _build_dictionary(self):
        self.dictionary = {
            synonym.lower()
            for answers in self.answer_sets
            for answer in answers
            for synonym in split_synonyms(answer)
            if synonym
        }

    def __len__(self) -> int:
        return len(self.questions)

    def lookup_dictionary(self, raw_input: str) -> bool:
        """Whether the utterance names an answer of any question in the corpus."""
        return bool(raw_input) and raw_input.strip().lower() in self.dictionary
