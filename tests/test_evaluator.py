import pytest

from holdem.cards import Card, build_deck, parse_cards
from holdem.evaluator import compare_rank, describe_rank, evaluate_best


def test_evaluate_best_identifies_all_hand_categories():
    cases = [
        (8, ["Ah", "Kh", "Qh", "Jh", "Th"]),  # straight flush
        (7, ["As", "Ah", "Ad", "Ac", "Kd"]),  # four of a kind
        (6, ["Qc", "Qd", "Qs", "9h", "9s"]),  # full house
        (5, ["Ah", "Jh", "9h", "6h", "2h"]),  # flush
        (4, ["9h", "8d", "7c", "6s", "5h"]),  # straight
        (3, ["8h", "8d", "8s", "Qd", "Js"]),  # three of a kind
        (2, ["7h", "7d", "4s", "4c", "As"]),  # two pair
        (1, ["6h", "6s", "Qh", "8d", "4c"]),  # one pair
        (0, ["As", "Kd", "Jh", "9c", "4d"]),  # high card
    ]

    for expected_category, labels in cases:
        rank = evaluate_best(parse_cards(labels))
        assert rank[0] == expected_category, f"labels={labels}"


def test_royal_flush_with_dead_cards_is_straight_flush_ace_high():
    rank = evaluate_best(parse_cards(["As", "Ks", "Qs", "Js", "Ts", "2d", "7c"]))
    assert rank == (8, 14)
    assert describe_rank(rank) == "Straight Flush"


def test_full_house_tiebreak_is_trips_then_pair():
    rank = evaluate_best(parse_cards(["2h", "2d", "2c", "5s", "5h"]))
    assert rank == (6, 2, 5)
    assert describe_rank(rank) == "Full House"


def test_wheel_is_five_high_and_below_six_high_straight():
    wheel = evaluate_best(parse_cards(["Ah", "2d", "3c", "4s", "5h", "9d", "Kd"]))
    six_high = evaluate_best(parse_cards(["2h", "3d", "4c", "5s", "6h"]))
    assert wheel == (4, 5)
    assert six_high == (4, 6)
    assert compare_rank(wheel, six_high) == -1
    assert compare_rank(six_high, wheel) == 1


def test_seven_cards_pick_highest_straight():
    rank = evaluate_best(parse_cards(["9h", "8d", "7c", "6s", "5h", "4d", "Kd"]))
    assert rank == (4, 9)


def test_flush_from_seven_cards_keeps_top_five():
    rank = evaluate_best(parse_cards(["Ah", "Jh", "9h", "6h", "2h", "3h", "Kc"]))
    assert rank == (5, 14, 11, 9, 6, 3)


def test_two_pair_compares_high_pair_then_low_pair_then_kicker():
    kings_up_ace = evaluate_best(parse_cards(["Kh", "Kd", "7s", "7c", "As"]))
    kings_up_queen = evaluate_best(parse_cards(["Ks", "Kc", "7h", "7d", "Qs"]))
    queens_up = evaluate_best(parse_cards(["Qh", "Qd", "Js", "Jc", "As"]))
    assert kings_up_ace == (2, 13, 7, 14)
    assert compare_rank(kings_up_ace, kings_up_queen) == 1
    assert compare_rank(kings_up_queen, queens_up) == 1


def test_pair_kickers_decide_between_equal_pairs():
    hand_a = evaluate_best(parse_cards(["Ah", "Ad", "Kc", "Qs", "9h", "2d", "3c"]))
    hand_b = evaluate_best(parse_cards(["Ah", "Ad", "Qc", "Js", "8h", "2d", "3c"]))
    assert compare_rank(hand_a, hand_b) == 1


def test_board_playing_for_both_hands_compares_equal():
    board = ["Ah", "Kh", "Qh", "Jh", "Th"]
    first = evaluate_best(parse_cards(["2c", "3d"] + board))
    second = evaluate_best(parse_cards(["4c", "5d"] + board))
    assert compare_rank(first, second) == 0


def test_compare_rank_treats_missing_elements_as_lowest():
    assert compare_rank((4, 5), (4, 5, 0)) == -1
    assert compare_rank([1], [0, 14]) == 1
    assert compare_rank([3, 9, 4], (3, 9, 4)) == 0


def test_describe_rank_labels():
    assert describe_rank((0, 14, 9, 7, 4, 2)) == "High Card"
    assert describe_rank((1, 6, 12, 8, 4)) == "Pair"
    assert describe_rank((7, 14, 13)) == "Four of a Kind"
    assert describe_rank(()) == "Unknown"


def test_evaluate_best_needs_five_cards():
    with pytest.raises(ValueError, match="five cards"):
        evaluate_best(parse_cards(["Ah", "Kd"]))


def test_card_validation_rejects_invalid_labels():
    with pytest.raises(ValueError, match="Invalid rank"):
        Card("1", "h")
    with pytest.raises(ValueError, match="Invalid suit"):
        Card("A", "x")


def test_build_deck_has_52_unique_cards_and_seed_is_reproducible():
    deck = build_deck(seed=777)
    assert len(deck) == 52
    assert len(set(deck)) == 52
    assert build_deck(seed=777) == deck
    assert build_deck(seed=778) != deck


def test_every_seven_card_hand_gets_a_category():
    deck = build_deck(seed=777)
    for idx in range(0, 42, 7):
        rank = evaluate_best(deck[idx : idx + 7])
        assert 0 <= rank[0] <= 8
