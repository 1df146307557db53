import pytest

from ankitutor.application.stats.grading import GradeCalculator
from ankitutor.domain.stats.models import Grade, RawCardStat


@pytest.fixture
def calculator():
    return GradeCalculator()


def _card(card_id=1, interval=10, factor=2500, reps=5, lapses=0, type=2, queue=2):
    return RawCardStat(
        card_id=card_id,
        interval=interval,
        factor=factor,
        reps=reps,
        lapses=lapses,
        type=type,
        queue=queue,
    )


def test_empty_card_set_is_new(calculator):
    stats = calculator.grade([])
    assert stats.grade == Grade.NEW
    assert stats.color == "blue"
    assert stats.summary == "New Note"
    assert stats.details == "No cards found"


def test_new_queue_masks_everything(calculator):
    cards = [_card(interval=100, lapses=20), _card(card_id=2, queue=0, type=2)]
    assert calculator.grade(cards).grade == Grade.NEW


def test_new_type_masks_everything(calculator):
    cards = [_card(type=0, queue=1, factor=1000)]
    assert calculator.grade(cards).grade == Grade.NEW


def test_many_lapses_grade_f_even_with_long_interval(calculator):
    stats = calculator.grade([_card(interval=100, lapses=9)])
    assert stats.grade == Grade.F
    assert stats.color == "red"


def test_eight_lapses_is_not_a_leech(calculator):
    assert calculator.grade([_card(interval=100, lapses=8)]).grade == Grade.A


def test_low_ease_grades_f(calculator):
    assert calculator.grade([_card(interval=100, factor=1299)]).grade == Grade.F
    assert calculator.grade([_card(interval=100, factor=1300)]).grade == Grade.A


@pytest.mark.parametrize(
    "interval,expected",
    [
        (0, Grade.D),
        (1, Grade.D),
        (2, Grade.C),
        (6, Grade.C),
        (7, Grade.B),
        (20, Grade.B),
        (21, Grade.A),
        (59, Grade.A),
        (60, Grade.S),
        (365, Grade.S),
    ],
)
def test_interval_ladder(calculator, interval, expected):
    assert calculator.grade([_card(interval=interval)]).grade == expected


def test_weakest_card_decides(calculator):
    cards = [_card(card_id=1, interval=90), _card(card_id=2, interval=3)]
    stats = calculator.grade(cards)
    assert stats.grade == Grade.C
    assert stats.color == "yellow"


def test_summary_uses_min_interval_and_total_reviews(calculator):
    cards = [_card(card_id=1, interval=30, reps=4), _card(card_id=2, interval=12, reps=7)]
    assert calculator.grade(cards).summary == "Interval: 12 | Reviews: 11"


def test_details_lists_every_card(calculator):
    cards = [_card(card_id=11, interval=3, factor=2500, reps=2, lapses=1), _card(card_id=12)]
    details = calculator.grade(cards).details
    blocks = details.split("\n\n")
    assert len(blocks) == 2
    assert blocks[0] == (
        "Card 11:\n- Interval: 3d\n- Ease Factor: 250%\n- Reviews: 2\n- Lapses: 1"
    )
    assert blocks[1].startswith("Card 12:")


def test_malformed_values_are_excluded(calculator):
    cards = [
        _card(card_id=1, interval="soon", factor=None, reps="x", lapses=float("nan")),
        _card(card_id=2, interval=25, factor=2300, reps=3, lapses=0),
    ]
    agg = calculator.aggregate(cards)
    assert agg.min_interval == 25
    assert agg.min_factor == 2300
    assert agg.max_lapses == 0
    assert agg.sum_reviews == 3
    assert calculator.grade(cards).grade == Grade.A


def test_no_usable_interval_falls_through_to_s(calculator):
    stats = calculator.grade([_card(interval=None)])
    assert stats.grade == Grade.S
    assert stats.summary.startswith("Interval: 0 |")


def test_grading_is_deterministic(calculator):
    cards = [_card(card_id=1, interval=5, reps=3), _card(card_id=2, interval=40, lapses=2)]
    assert calculator.grade(cards) == calculator.grade(list(cards))


def test_from_card_info_maps_anki_keys():
    stat = RawCardStat.from_card_info(
        {"cardId": 7, "interval": 3, "factor": 2500, "reps": 4, "lapses": 1, "type": 2, "queue": 2}
    )
    assert stat.card_id == 7
    assert stat.interval == 3
    assert stat.due is None
