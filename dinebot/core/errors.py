from __future__ import annotations


class BotError(Exception):
    """Base class for failures raised by the ordering bot."""


class ProtocolError(BotError):
    """Inbound envelope could not be parsed."""


class SignatureMismatch(ProtocolError):
    pass


class TenantNotFound(BotError):
    def __init__(self, phone_number_id: str | None) -> None:
        super().__init__(f"No restaurant for phone_number_id={phone_number_id}")
        self.phone_number_id = phone_number_id


class BotDisabled(BotError):
    def __init__(self, restaurant_id: int) -> None:
        super().__init__(f"WhatsApp bot disabled for restaurant_id={restaurant_id}")
        self.restaurant_id = restaurant_id


class InputValidationError(BotError):
    """User input does not fit the grammar of the current state.

    Carries the corrective text shown to the customer.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(BotError):
    """A menu item, category or order referenced by the conversation is gone."""


class CommitFailure(BotError):
    pass


class DeliveryFailure(BotError):
    pass


class ConversationConflict(BotError):
    """Another delivery updated the same conversation first."""

    def __init__(self, conversation_id: int | None) -> None:
        super().__init__(f"Conversation {conversation_id} was modified concurrently")
        self.conversation_id = conversation_id
