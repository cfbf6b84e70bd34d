"""FSM states package."""

from tripbot.states.forms import ExpenseForm

__all__ = ["ExpenseForm"]
