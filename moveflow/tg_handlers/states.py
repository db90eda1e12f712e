"""
Conversation states for the deposit/withdraw prompt.

Idle (no state) -> AmountPrompt.awaiting_amount{action, strategy_id} -> Idle

State is held by aiogram's FSM storage, keyed per bot/chat/user, and reaches
handlers through the injected FSMContext. There is no timeout: the next
text message in the chat is read as the amount, whatever it says.
"""

from aiogram.fsm.state import State, StatesGroup

DEPOSIT = "deposit"
WITHDRAW = "withdraw"


class AmountPrompt(StatesGroup):
    awaiting_amount = State()
