"""Flow-scoped conversation context.

The context is a tagged union: ``step`` carries only the fields the
handler of the current state needs, discriminated by ``kind``. Order
setup captured at the start of the conversation (order type, table) lives
beside it because checkout needs it after many steps.
"""
from __future__ import annotations

import json
import logging
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from dinebot.fsm import states
from dinebot.fsm.cart import AddonChoice, VariantChoice

logger = logging.getLogger(__name__)

OrderType = Literal["dine_in", "pickup", "delivery"]


class OrderSetup(BaseModel):
    order_type: Optional[OrderType] = None
    table_number: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        if self.order_type is None:
            return False
        if self.order_type == "dine_in":
            return bool(self.table_number)
        return True


class ItemDraft(BaseModel):
    item_id: int
    name: str
    base_price_cents: int
    variant_options: list[VariantChoice] = Field(default_factory=list)
    addon_options: list[AddonChoice] = Field(default_factory=list)
    variant: Optional[VariantChoice] = None
    addons: list[AddonChoice] = Field(default_factory=list)
    instructions: Optional[str] = None


class IdleStep(BaseModel):
    kind: Literal["idle"] = "idle"


class CategoryListStep(BaseModel):
    kind: Literal["category_list"] = "category_list"
    category_ids: list[int] = Field(default_factory=list)


class ItemListStep(BaseModel):
    kind: Literal["item_list"] = "item_list"
    item_ids: list[int] = Field(default_factory=list)
    category_id: Optional[int] = None
    search_term: Optional[str] = None


class VariantStep(BaseModel):
    kind: Literal["variant"] = "variant"
    draft: ItemDraft


class AddonStep(BaseModel):
    kind: Literal["addons"] = "addons"
    draft: ItemDraft


class InstructionsStep(BaseModel):
    kind: Literal["instructions"] = "instructions"
    draft: ItemDraft


class QuantityStep(BaseModel):
    kind: Literal["quantity"] = "quantity"
    draft: ItemDraft


class HistoryStep(BaseModel):
    kind: Literal["history"] = "history"
    order_ids: list[int] = Field(default_factory=list)


class ReorderStep(BaseModel):
    kind: Literal["reorder"] = "reorder"
    order_id: int


Step = Annotated[
    Union[
        IdleStep,
        CategoryListStep,
        ItemListStep,
        VariantStep,
        AddonStep,
        InstructionsStep,
        QuantityStep,
        HistoryStep,
        ReorderStep,
    ],
    Field(discriminator="kind"),
]

# Step variant each state's handler reads; states missing here use IdleStep.
STATE_STEPS: dict[str, type[BaseModel]] = {
    states.BROWSING_MENU: CategoryListStep,
    states.VIEWING_CATEGORY: CategoryListStep,
    states.VIEWING_ITEM: ItemListStep,
    states.SELECTING_VARIANT: VariantStep,
    states.SELECTING_ADDONS: AddonStep,
    states.ADDING_INSTRUCTIONS: InstructionsStep,
    states.SELECTING_QUANTITY: QuantityStep,
    states.VIEWING_HISTORY: HistoryStep,
    states.CONFIRMING_REORDER: ReorderStep,
}


class ConversationContext(BaseModel):
    setup: OrderSetup = Field(default_factory=OrderSetup)
    resume_checkout: bool = False
    step: Step = Field(default_factory=IdleStep)

    def with_step(self, step: BaseModel) -> "ConversationContext":
        return self.model_copy(update={"step": step})


def step_for_state(context: ConversationContext, state: str):
    """Return the step payload expected by ``state`` or None when it is stale."""
    expected = STATE_STEPS.get(state, IdleStep)
    if isinstance(context.step, expected):
        return context.step
    return None


def dump_context(context: ConversationContext) -> str:
    return json.dumps(context.model_dump(mode="json"), ensure_ascii=False)


def load_context(raw: str | None) -> ConversationContext:
    if not raw:
        return ConversationContext()
    try:
        data = json.loads(raw)
        return ConversationContext.model_validate(data if isinstance(data, dict) else {})
    except (ValueError, ValidationError):
        logger.warning("Discarding unreadable conversation context")
        return ConversationContext()
