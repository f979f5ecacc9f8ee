import pytest

from alphapi.optimization.grid_search import GridSearch


def test_grid_search_selects_best():
    scores = {
        (0.1, 0.001, 0.5): 0.7,
        (0.5, 0.001, 0.5): 0.9,
        (0.9, 0.001, 0.5): 0.3,
    }
    grid_search = GridSearch([0.1, 0.5, 0.9], [0.001], [0.5])

    # when
    best_score, best_idx = grid_search.evaluate(
        lambda alpha, beta, gamma: scores[(alpha, beta, gamma)]
    )

    assert best_score == pytest.approx(0.9)
    assert best_idx == (1, 0, 0)
    assert len(grid_search) == 3


def test_grid_search_order_and_ties():
    visited = []

    def evaluator(alpha, beta, gamma):
        visited.append((alpha, beta, gamma))
        return 1.0

    grid_search = GridSearch([0.1, 0.2], [0.01, 0.02], [0.5, 0.6])

    # when
    best_score, best_idx = grid_search.evaluate(evaluator)

    # alpha varies slowest, gamma fastest
    assert visited[:3] == [(0.1, 0.01, 0.5), (0.1, 0.01, 0.6), (0.1, 0.02, 0.5)]
    assert len(visited) == 8
    assert best_idx == (0, 0, 0)
    assert best_score == 1.0


def test_grid_search_lower_bound():
    grid_search = GridSearch([0.1, 0.2], [0.01], [0.5])

    # when
    best_score, best_idx = grid_search.evaluate(
        lambda alpha, beta, gamma: -2.0 if alpha == 0.1 else -1.5
    )

    assert best_score == pytest.approx(-1.0)
    assert best_idx == (0, 0, 0)


def test_grid_search_empty_candidates():
    with pytest.raises(ValueError, match="beta"):
        GridSearch([0.1], [], [0.5])
