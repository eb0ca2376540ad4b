"""Message handling pipeline for the LINE sales assistant.

Role:
    Turns one inbound text message into one reply text. Owns the MessageContext
    contract and the step order used by the PipelineRunner; the matching core
    (keywords, matching, orchestrator) stays free of I/O.

Step contracts:
    Intent Detection:
        Reads text; sets intent (kind, keyword_text, wants_price/stock, quantity).
    Order Validation:
        ORDER only; halts with guidance when the quantity or name is missing.
    Catalog Fetch:
        Loads a fresh catalog snapshot unless the intent does not need one.
    Respond:
        Runs the core for the intent and sets reply_text.
    Finalize:
        Always runs; logs the outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol

from .catalog import Product
from .errors import SalesBotError
from .formatting import (
    FALLBACK_REPLY,
    HELP_REPLY,
    INVALID_QUANTITY_REPLY,
    NO_KEYWORD_REPLY,
    NO_RECENT_REPLY,
    RECENT_HEADER,
    format_order_confirmation,
    join_blocks,
)
from .intents import IntentDecision, IntentKind, classify_intent
from .matching import DEFAULT_MAX_CANDIDATES, DEFAULT_SIMILARITY_THRESHOLD, SingleMatch, resolve
from .models import UserProfile
from .orchestrator import format_outcome, resolve_batch, resolve_codes
from .orders import OrderRecord, build_order
from .recent_items import RecentItems
from .step_runner import PipelineRunner, PipelineStep

logger = logging.getLogger("salesbot.assistant")

CATALOG_FREE_INTENTS = {IntentKind.HELP, IntentKind.RECENT}


class CatalogProvider(Protocol):
    def fetch_products(self) -> List[Product]:
        ...


class OrderLedger(Protocol):
    def append_order(self, record: OrderRecord) -> None:
        ...


@dataclass
class MessageContext:
    """Mutable context passed through each pipeline step."""
    user_id: str
    text: str
    intent: IntentDecision = field(default_factory=lambda: IntentDecision(kind=IntentKind.HELP))
    catalog: List[Product] = field(default_factory=list)
    reply_text: str = ""
    order: Optional[OrderRecord] = None
    halted: bool = False
    failed: bool = False
    steps: List[Dict[str, str]] = field(default_factory=list)

    def log(self, step: str, detail: str, status: str = "success") -> None:
        self.steps.append({"step": step, "detail": detail, "status": status})


class SalesAssistant:
    def __init__(
        self,
        catalog: CatalogProvider,
        ledger: OrderLedger,
        profile_lookup: Callable[[Optional[str]], UserProfile],
        recent: Optional[RecentItems] = None,
        threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
    ) -> None:
        """Purpose: Wire collaborators and build the step runner.
        Inputs/Outputs: Inputs are the catalog provider, order ledger, profile lookup,
            optional recency cache and resolver limits; no return value.
        Side Effects / State: Constructs a PipelineRunner with ordered steps.
        Dependencies: Uses PipelineRunner/PipelineStep and step methods on this class.
        Failure Modes: None at init; collaborator errors surface during handling.
        If Removed: The webhook has nothing to turn messages into replies.
        Testing Notes: Instantiate with in-memory fakes and call handle_message.
        """
        # Store collaborators and register steps in fixed order.
        self._catalog = catalog
        self._ledger = ledger
        self._profile_lookup = profile_lookup
        self._recent = recent
        self._threshold = threshold
        self._max_candidates = max_candidates
        self._runner = PipelineRunner(
            steps=[
                PipelineStep("intent_detection", self._step_intent_detection),
                PipelineStep("order_validation", self._step_order_validation, skip_if=_not_order),
                PipelineStep("catalog_fetch", self._step_catalog_fetch, skip_if=_needs_no_catalog),
                PipelineStep("respond", self._step_respond),
                PipelineStep("finalize", self._step_finalize, always_run=True),
            ]
        )

    def handle_message(self, user_id: Optional[str], text: str) -> MessageContext:
        """Purpose: Run the pipeline for one message and return the populated context.
        Inputs/Outputs: Inputs are sender id and message text; output is MessageContext
            with reply_text set.
        Side Effects / State: May append an order row and update the recency cache.
        Dependencies: Uses PipelineRunner.run.
        Failure Modes: Collaborator failures (SalesBotError) are logged and turned into
            FALLBACK_REPLY with failed=True; other exceptions propagate.
        If Removed: The webhook cannot answer messages.
        Testing Notes: Make the fake catalog raise SheetsError and expect the fallback.
        """
        # Collaborator errors end the turn with a polite fallback.
        context = MessageContext(user_id=user_id or "", text=text or "")
        logger.info("user=%s question=%s", context.user_id, context.text)
        try:
            self._runner.run(context)
        except SalesBotError:
            logger.exception("user=%s collaborator failure", context.user_id)
            context.log("respond", "collaborator failure", status="error")
            context.reply_text = FALLBACK_REPLY
            context.failed = True
        return context

    def _step_intent_detection(self, context: MessageContext) -> None:
        context.intent = classify_intent(context.text)
        context.log("intent_detection", context.intent.kind.value)

    def _step_order_validation(self, context: MessageContext) -> None:
        # Bad input is answered locally; nothing is fetched or written.
        intent = context.intent
        if intent.quantity is None or intent.quantity <= 0:
            context.reply_text = INVALID_QUANTITY_REPLY
            context.halted = True
        elif not intent.keyword_text:
            context.reply_text = NO_KEYWORD_REPLY
            context.halted = True
        context.log("order_validation", "halted" if context.halted else "ok")

    def _step_catalog_fetch(self, context: MessageContext) -> None:
        context.catalog = self._catalog.fetch_products()
        context.log("catalog_fetch", f"{len(context.catalog)} products")

    def _step_respond(self, context: MessageContext) -> None:
        """Purpose: Produce reply_text for the detected intent.
        Inputs/Outputs: Input is MessageContext; sets reply_text (and order for ORDER).
        Side Effects / State: ORDER appends to the ledger; lookups feed the recency cache.
        Dependencies: Uses resolve_batch, resolve_codes, resolve and build_order.
        Failure Modes: Ledger/profile errors propagate to handle_message.
        If Removed: Every message goes unanswered.
        Testing Notes: Cover each IntentKind with a two-product fake catalog.
        """
        # Dispatch on the intent kind.
        intent = context.intent
        if intent.kind is IntentKind.QUERY:
            blocks = resolve_batch(
                context.catalog,
                intent.keyword_text,
                intent.wants_price,
                intent.wants_stock,
                threshold=self._threshold,
                max_candidates=self._max_candidates,
                recent=self._recent,
                user_id=context.user_id,
            )
            context.reply_text = join_blocks(blocks)
        elif intent.kind is IntentKind.CODE_LOOKUP:
            lines = resolve_codes(
                context.catalog,
                intent.keyword_text,
                threshold=self._threshold,
                max_candidates=self._max_candidates,
            )
            context.reply_text = "\n".join(lines)
        elif intent.kind is IntentKind.ORDER:
            context.reply_text = self._place_order(context)
        elif intent.kind is IntentKind.RECENT:
            context.reply_text = self._recent_reply(context.user_id)
        else:
            context.reply_text = HELP_REPLY
        context.log("respond", intent.kind.value)

    def _place_order(self, context: MessageContext) -> str:
        intent = context.intent
        quantity = intent.quantity or 0
        outcome = resolve(
            context.catalog,
            intent.keyword_text,
            threshold=self._threshold,
            max_candidates=self._max_candidates,
        )
        if not isinstance(outcome, SingleMatch):
            return format_outcome(intent.keyword_text, outcome, wants_price=False, wants_stock=False)

        profile = self._profile_lookup(context.user_id)
        record = build_order(outcome.product, quantity, profile)
        self._ledger.append_order(record)
        context.order = record
        if self._recent is not None:
            self._recent.record(context.user_id, outcome.product)
        logger.info("user=%s order_id=%s code=%s qty=%d", context.user_id, record.order_id, record.product_code, quantity)
        return format_order_confirmation(outcome.product, quantity, record.order_id)

    def _recent_reply(self, user_id: str) -> str:
        products = self._recent.get(user_id) if self._recent is not None else []
        if not products:
            return NO_RECENT_REPLY
        lines = "\n".join(product.label for product in products)
        return f"{RECENT_HEADER}\n{lines}"

    def _step_finalize(self, context: MessageContext) -> None:
        logger.info(
            "user=%s intent=%s halted=%s reply_chars=%d",
            context.user_id,
            context.intent.kind.value,
            context.halted,
            len(context.reply_text),
        )


def _not_order(context: MessageContext) -> bool:
    return context.intent.kind is not IntentKind.ORDER


def _needs_no_catalog(context: MessageContext) -> bool:
    return context.intent.kind in CATALOG_FREE_INTENTS
