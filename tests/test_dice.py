"""Unit tests for the dice expression engine."""

from unittest.mock import patch

import pytest

from chronicle.dice import (
    DiceValidation,
    RollDetail,
    RollResult,
    build_breakdown,
    evaluate,
    format_roll_result,
    load_roll_details,
    parse_dice_expression,
    quick_roll,
    roll_with_advantage,
    roll_with_disadvantage,
    substitute_attributes,
)


class TestSubstituteAttributes:
    def test_numeric_value(self) -> None:
        assert substitute_attributes("1d20+{character.strength}", {"strength": 3}) == "1d20+3"

    def test_numeric_string(self) -> None:
        assert substitute_attributes("{character.dex}", {"dex": "2"}) == "2"

    def test_float_string(self) -> None:
        assert substitute_attributes("{character.dex}", {"dex": "2.5"}) == "2.5"

    def test_integral_float_drops_fraction(self) -> None:
        assert substitute_attributes("{character.dex}", {"dex": "4.0"}) == "4"

    def test_name_is_case_insensitive(self) -> None:
        assert substitute_attributes("{Character.STRENGTH}", {"strength": 5}) == "5"

    def test_unknown_becomes_zero(self) -> None:
        assert substitute_attributes("{character.unknown}+1", {}) == "0+1"

    def test_non_numeric_becomes_zero(self) -> None:
        assert substitute_attributes("{character.title}", {"title": "Baron"}) == "0"

    def test_partial_numeric_becomes_zero(self) -> None:
        assert substitute_attributes("{character.hp}", {"hp": "12abc"}) == "0"

    def test_non_finite_becomes_zero(self) -> None:
        assert substitute_attributes("{character.x}", {"x": "inf"}) == "0"
        assert substitute_attributes("{character.x}", {"x": float("nan")}) == "0"

    def test_no_bindings(self) -> None:
        assert substitute_attributes("2+{character.level}") == "2+0"

    def test_negative_value(self) -> None:
        assert substitute_attributes("1d20+{character.str}", {"str": -1}) == "1d20+-1"

    def test_small_value_stays_positional(self) -> None:
        assert substitute_attributes("{character.x}+1", {"x": "0.00001"}) == "0.00001+1"
        assert evaluate("{character.x}+1", {"x": "0.00001"}).total == 1


class TestEvaluate:
    @pytest.mark.parametrize("count,sides", [(1, 1), (1, 6), (3, 6), (4, 20), (10, 100)])
    def test_dice_term_shape(self, count: int, sides: int) -> None:
        for _ in range(20):
            result = evaluate(f"{count}d{sides}")
            assert len(result.rolls) == count
            assert all(r.type == f"d{sides}" and r.sides == sides for r in result.rolls)
            assert all(1 <= r.value <= sides for r in result.rolls)
            assert result.total == sum(r.value for r in result.rolls)

    def test_arithmetic_only(self) -> None:
        result = evaluate("(2+3)*4")
        assert result.total == 20
        assert result.rolls == []
        assert result.breakdown == "(2+3)*4"

    def test_attribute_with_d1(self) -> None:
        result = evaluate("1d1+{character.strength}", {"strength": 3})
        assert result.substituted == "1d1+3"
        assert result.total == 4

    def test_unknown_attribute(self) -> None:
        result = evaluate("{character.unknown}+1", {})
        assert result.substituted == "0+1"
        assert result.total == 1

    def test_unknown_attribute_without_bindings(self) -> None:
        assert evaluate("{character.unknown}+1").total == 1

    @pytest.mark.parametrize("expression", ["abc", "", "   ", "5++-3", "1d6+", "2*(3"])
    def test_malformed_totals_zero(self, expression: str) -> None:
        result = evaluate(expression)
        assert result.total == 0
        assert result.expression == expression

    def test_non_ascii_digits_are_rejected(self) -> None:
        assert evaluate("\u0663+1").total == 0

    def test_non_ascii_digits_do_not_form_dice_counts(self) -> None:
        result = evaluate("1\u0660d1")
        assert result.total == 0
        assert result.rolls == []

    def test_division_by_zero(self) -> None:
        result = evaluate("1d1/0")
        assert result.total == 0
        assert result.breakdown == "d1: [1] = 1"

    def test_negative_modifier_fixup(self) -> None:
        assert evaluate("5+-3").total == 2

    def test_floor(self) -> None:
        assert evaluate("7/2").total == 3
        assert evaluate("-7/2").total == -4

    def test_uppercase_d(self) -> None:
        result = evaluate("2D1")
        assert [r.type for r in result.rolls] == ["d1", "d1"]
        assert result.total == 2

    def test_injected_roller_order(self, fixed_rolls) -> None:
        result = evaluate("2d6+1d20-1d4", roller=fixed_rolls(3, 5, 17, 2))
        assert [(r.type, r.value) for r in result.rolls] == [
            ("d6", 3),
            ("d6", 5),
            ("d20", 17),
            ("d4", 2),
        ]
        assert result.total == 3 + 5 + 17 - 2
        assert result.breakdown == "d6: [3, 5] = 8 | d20: [17] = 17 | d4: [2] = 2"

    def test_breakdown_groups_repeated_die_types(self, fixed_rolls) -> None:
        result = evaluate("1d6+1d8+1d6", roller=fixed_rolls(2, 7, 4))
        assert result.breakdown == "d6: [2, 4] = 6 | d8: [7] = 7"
        assert result.total == 13

    def test_each_term_replaced_in_place(self, fixed_rolls) -> None:
        # "2d6" also occurs inside "12d6"; each occurrence is rolled once.
        result = evaluate("12d6-2d6", roller=fixed_rolls(*[1] * 12, 6, 6))
        assert len(result.rolls) == 14
        assert result.total == 12 - 12

    def test_dice_with_attribute_and_parentheses(self, fixed_rolls) -> None:
        result = evaluate(
            "(1d8+{character.str})*2", {"str": "3"}, roller=fixed_rolls(5)
        )
        assert result.substituted == "(1d8+3)*2"
        assert result.total == 16

    def test_patched_randint(self) -> None:
        with patch("chronicle.dice.random.randint", return_value=4):
            result = evaluate("3d6+1")
        assert [r.value for r in result.rolls] == [4, 4, 4]
        assert result.total == 13

    def test_too_many_dice_is_absorbed(self) -> None:
        result = evaluate("100000000d6")
        assert result.total == 0
        assert result.rolls == []
        assert result.breakdown == "Error rolling dice"
        assert result.substituted == "100000000d6"

    def test_roller_failure_is_absorbed(self) -> None:
        def _broken(sides: int) -> int:
            raise RuntimeError("no entropy")

        result = evaluate("1d6", roller=_broken)
        assert result.total == 0
        assert result.breakdown == "Error rolling dice"

    def test_repeat_evaluation_same_shape(self) -> None:
        first = evaluate("2d6+1d20+{character.str}", {"str": 2})
        second = evaluate("2d6+1d20+{character.str}", {"str": 2})
        assert first.substituted == second.substituted
        assert [r.type for r in first.rolls] == [r.type for r in second.rolls]


class TestConvenienceRolls:
    def test_quick_roll_no_modifier(self) -> None:
        result = quick_roll(20)
        assert result.expression == "1d20"
        assert 1 <= result.total <= 20

    def test_quick_roll_positive_modifier(self) -> None:
        result = quick_roll(1, count=2, modifier=3)
        assert result.expression == "2d1+3"
        assert result.total == 5

    def test_quick_roll_negative_modifier(self) -> None:
        result = quick_roll(1, count=1, modifier=-2)
        assert result.expression == "1d1-2"
        assert result.total == -1

    def test_advantage_takes_max(self) -> None:
        for _ in range(1000):
            result = roll_with_advantage(0)
            values = [r.value for r in result.rolls]
            assert len(values) == 2
            assert all(r.type == "d20" for r in result.rolls)
            assert all(1 <= v <= 20 for v in values)
            assert result.total == max(values)

    def test_disadvantage_takes_min(self) -> None:
        for _ in range(1000):
            result = roll_with_disadvantage(0)
            values = [r.value for r in result.rolls]
            assert all(1 <= v <= 20 for v in values)
            assert result.total == min(values)

    def test_advantage_breakdown(self, fixed_rolls) -> None:
        result = roll_with_advantage(3, roller=fixed_rolls(8, 14))
        assert result.total == 17
        assert result.expression == "2d20 (advantage) +3"
        assert result.breakdown == "Rolls: [8, 14] → 14 (higher) + 3"

    def test_disadvantage_breakdown(self, fixed_rolls) -> None:
        result = roll_with_disadvantage(-2, roller=fixed_rolls(8, 14))
        assert result.total == 6
        assert result.expression == "2d20 (disadvantage) -2"
        assert result.breakdown == "Rolls: [8, 14] → 8 (lower) - 2"


class TestHelpers:
    def test_build_breakdown_without_rolls(self) -> None:
        assert build_breakdown([], "1+2") == "1+2"

    def test_validate_parts(self) -> None:
        assert parse_dice_expression("1d20 + {Character.Str} - 2") == DiceValidation(
            valid=True, parts=["{character.str}", "1d20", "-2"]
        )

    def test_validate_rejects_garbage(self) -> None:
        validation = parse_dice_expression("roll some dice")
        assert not validation.valid
        assert validation.error == "Invalid dice expression format"

    def test_validate_empty_is_valid(self) -> None:
        assert parse_dice_expression("").valid

    def test_format_roll_result(self) -> None:
        result = RollResult(
            expression="2d6+1",
            substituted="2d6+1",
            rolls=[RollDetail(type="d6", value=3, sides=6), RollDetail(type="d6", value=4, sides=6)],
            total=8,
            breakdown="d6: [3, 4] = 7",
        )
        assert format_roll_result(result) == "2d6+1 = 8 (d6: [3, 4] = 7)"

    def test_load_roll_details_round_trip(self) -> None:
        result = evaluate("1d1+2")
        assert load_roll_details(result.model_dump_json()) == result

    def test_load_roll_details_corrupt(self) -> None:
        loaded = load_roll_details("{not json")
        assert loaded.total == 0
        assert loaded.breakdown == "Invalid roll data"
