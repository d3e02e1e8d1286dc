"""Unit tests for layaway schedule generation"""

from datetime import date
from layaway_hub.domain.installments import generate_layaway_schedule


def test_generate_layaway_schedule_equal_split():
    """Test schedule with evenly divisible amount"""
    installments = generate_layaway_schedule(105000, 3)

    assert len(installments) == 3
    assert all(inst.amount == 35000 for inst in installments)
    assert sum(inst.amount for inst in installments) == 105000


def test_generate_layaway_schedule_rounding():
    """Test last installment absorbs remainder"""
    installments = generate_layaway_schedule(100001, 3)

    assert [inst.amount for inst in installments] == [33333, 33333, 33335]
    assert sum(inst.amount for inst in installments) == 100001


def test_generate_layaway_schedule_monthly_dates():
    """Test due dates fall on the same day of each following month"""
    installments = generate_layaway_schedule(60000, 6, start_date=date(2024, 3, 10))

    assert [inst.due_date for inst in installments] == [
        date(2024, 4, 10),
        date(2024, 5, 10),
        date(2024, 6, 10),
        date(2024, 7, 10),
        date(2024, 8, 10),
        date(2024, 9, 10),
    ]


def test_generate_layaway_schedule_clamps_to_month_end():
    """Test a 31st start date lands on the last day of shorter months"""
    installments = generate_layaway_schedule(30000, 3, start_date=date(2024, 1, 31))

    assert [inst.due_date for inst in installments] == [
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
    ]


def test_generate_layaway_schedule_crosses_year():
    installments = generate_layaway_schedule(120000, 12, start_date=date(2024, 6, 1))

    assert installments[-1].due_date == date(2025, 6, 1)
    assert len(installments) == 12


def test_generate_layaway_schedule_zero_amount():
    """Test handling of zero amount"""
    assert generate_layaway_schedule(0, 3) == []
    assert generate_layaway_schedule(1000, 0) == []
