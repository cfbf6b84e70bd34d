"""Constants used throughout the bot."""

from tripbot.ledger.models import ExpenseCategory, SettlementStatus

CATEGORY_LABELS = {
    ExpenseCategory.FOOD: "🍜 Food",
    ExpenseCategory.TRANSPORT: "🚗 Transport",
    ExpenseCategory.SHOPPING: "🛍 Shopping",
    ExpenseCategory.ACCOMMODATION: "🛏 Accommodation",
    ExpenseCategory.TICKET: "🎟 Ticket",
    ExpenseCategory.ACTIVITY: "⭐ Activity",
    ExpenseCategory.OTHERS: "🏷 Others",
}

STATUS_LABELS = {
    SettlementStatus.PAYER: "👑 paid",
    SettlementStatus.SETTLED: "✅ settled",
    SettlementStatus.COVERED_BY_GLOBAL: "☑️ settled with total",
    SettlementStatus.ZERO_DEBT: "☑️ nothing owed",
    SettlementStatus.OUTSTANDING: "⏳ owes",
}

# Callback data prefixes
CB_EXPENSE = "expense"
CB_SETTLE = "settle"
CB_BREAKDOWN = "breakdown"

# Reply keyboard buttons
BTN_CANCEL = "❌ Cancel"
BTN_SKIP = "⏭ Skip"

# Expense list page size
EXPENSES_PAGE = 10

# Messages
MSG_WELCOME = """
👋 Hi! I keep the shared wallet for your trip.

I can:
• Record who paid for what, in any currency
• Work out who owes whom
• Suggest the fewest transfers to square up
• Show where the money went

Start with /join, then /add_expense. /help lists every command.
"""

MSG_HELP = """
📖 <b>Commands:</b>

<b>Trip members:</b>
/join - join this trip
/add_member - add someone without Telegram
/members - list members
/remove_member - remove a member

<b>Expenses:</b>
/add_expense - record an expense
/expenses - latest expenses

<b>Settling up:</b>
/balances - balances and suggested transfers
/history - completed repayments (tap to undo)

<b>Currencies:</b>
/rates - current rates
/set_rate CODE RATE - set a rate into the base currency
/remove_rate CODE - stop tracking a currency
/refresh_rates - pull fresh rates
/convert AMOUNT FROM TO - currency calculator

<b>Analysis:</b>
/breakdown - team spend by category
/breakdown NAME - one member's share by category
"""

# Error messages
ERR_NO_MEMBERS = "❌ Nobody has joined this trip yet. Use /join first."
ERR_NOT_FOUND = "❌ Not found"
ERR_NOT_SYNCED = "⚠️ Saved locally but the shared trip did not accept the change. Try again."
ERR_RATES_UNAVAILABLE = "⚠️ Could not reach the rate service. Rates were left unchanged."
