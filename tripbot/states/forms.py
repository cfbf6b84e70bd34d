"""FSM states for multi-step forms."""

from aiogram.fsm.state import State, StatesGroup


class ExpenseForm(StatesGroup):
    """States for adding an expense."""
    amount = State()
    currency = State()
    category = State()
    payer = State()
    split_with = State()
    note = State()
