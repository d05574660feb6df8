import random
from collections import Counter

import pytest

from wtrivia.errors import NoQuestionsError, NotEnoughAnswersError
from wtrivia.selector import is_true_false, select_questions, shuffle_answers


def test_selects_distinct_indices_of_game_length() -> None:
    selection = select_questions(20, 5, [], rng=random.Random(1))
    assert len(selection.indices) == 5
    assert len(set(selection.indices)) == 5
    assert all(0 <= index < 20 for index in selection.indices)
    assert selection.game_length == 5


def test_game_length_clamped_to_corpus_size() -> None:
    selection = select_questions(3, 5, [], rng=random.Random(1))
    assert sorted(selection.indices) == [0, 1, 2]
    assert selection.game_length == 3


def test_avoids_recent_history() -> None:
    history = [0, 1, 2, 3, 4]
    for seed in range(10):
        selection = select_questions(10, 5, history, rng=random.Random(seed))
        assert set(selection.indices) == {5, 6, 7, 8, 9}


def test_history_is_appended() -> None:
    selection = select_questions(10, 2, [7], rng=random.Random(3))
    assert selection.history[0] == 7
    assert selection.history[1:] == selection.indices


def test_exhausted_history_is_trimmed_oldest_first() -> None:
    history = [0, 1, 2, 3]
    selection = select_questions(4, 2, history, rng=random.Random(5))
    assert set(selection.indices) == {0, 1}
    assert selection.history == [2, 3] + selection.indices


def test_falls_back_to_history_without_duplicates() -> None:
    history = [5, 4, 3, 2, 1]
    selection = select_questions(6, 3, history, rng=random.Random(2))
    assert selection.indices[0] == 0
    assert len(set(selection.indices)) == 3


def test_history_never_exceeds_cap() -> None:
    rng = random.Random(11)
    history: list = []
    for _ in range(60):
        selection = select_questions(500, 4, history, rng=rng)
        history = selection.history
        assert len(history) <= 100
    assert len(history) == 100


def test_empty_corpus_raises() -> None:
    with pytest.raises(NoQuestionsError):
        select_questions(0, 4, [])


def test_selection_is_reproducible_with_seed() -> None:
    first = select_questions(50, 4, [1, 2], rng=random.Random(9))
    second = select_questions(50, 4, [1, 2], rng=random.Random(9))
    assert first == second


def test_shuffle_places_correct_answer() -> None:
    answers = ["Paris", "London", "Berlin", "Madrid"]
    for position in range(4):
        shuffled = shuffle_answers(answers, correct_position=position, rng=random.Random(position))
        assert shuffled.choices[position] == "Paris"
        assert shuffled.correct_index == position + 1
        assert Counter(shuffled.choices) == Counter(answers)


def test_shuffle_random_position_is_consistent() -> None:
    answers = ["Mars", "Venus", "Jupiter", "Mercury"]
    shuffled = shuffle_answers(answers, rng=random.Random(4))
    assert shuffled.choices[shuffled.correct_index - 1] == "Mars"
    assert not shuffled.true_false


def test_shuffle_rejects_bad_position() -> None:
    with pytest.raises(ValueError):
        shuffle_answers(["a", "b"], correct_position=2)


def test_true_false_keeps_storage_order() -> None:
    for answers in (["True", "False"], ["False", "True"]):
        for seed in range(5):
            shuffled = shuffle_answers(answers, rng=random.Random(seed))
            assert shuffled.choices == answers
            assert shuffled.correct_index == 1
            assert shuffled.true_false


def test_is_true_false() -> None:
    assert is_true_false(["true", "FALSE"])
    assert not is_true_false(["True", "False", "Maybe"])
    assert not is_true_false(["Yes", "No"])


def test_not_enough_answers() -> None:
    with pytest.raises(NotEnoughAnswersError):
        shuffle_answers(["Only"])
    with pytest.raises(NotEnoughAnswersError):
        shuffle_answers([])


def test_stale_history_is_ignored() -> None:
    selection = select_questions(4, 4, [9, 0, 1], rng=random.Random(0))
    assert sorted(selection.indices) == [0, 1, 2, 3]
    assert 9 not in selection.history
