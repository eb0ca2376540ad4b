import pytest

from salesbot.assistant import SalesAssistant
from salesbot.formatting import FALLBACK_REPLY, HELP_REPLY, INVALID_QUANTITY_REPLY, NO_RECENT_REPLY
from salesbot.recent_items import RecentItems
from salesbot.step_runner import PipelineRunner, PipelineStep

from .conftest import FakeSheets, fake_profile


@pytest.fixture
def assistant(sheets):
    return SalesAssistant(
        catalog=sheets,
        ledger=sheets,
        profile_lookup=fake_profile,
        recent=RecentItems(max_items=10),
        threshold=0.6,
        max_candidates=5,
    )


def test_help_skips_catalog(assistant, sheets):
    context = assistant.handle_message("U1", "hello")
    assert context.reply_text == HELP_REPLY
    assert sheets.fetch_count == 0


def test_multi_query_reply(assistant):
    context = assistant.handle_message("U1", "查價 a123\n庫存 calendar deluxe")
    assert context.reply_text == (
        "《Fish Tank Kit》\n定價：1200 元\n庫存：在庫中，可出 5"
        "\n\n"
        "《Calendar Deluxe》\n定價：520 元\n庫存：缺貨，預計補貨日：2026-11-01"
    )


def test_code_lookup_reply(assistant):
    context = assistant.handle_message("U1", "查編號 a123\ncurious")
    assert context.reply_text == "A123 Fish Tank Kit\nC1 Curious Frog"


def test_order_is_appended(assistant, sheets):
    context = assistant.handle_message("U1", "下單 Fish Tank x 2")
    assert len(sheets.orders) == 1
    record = sheets.orders[0]
    assert (record.user_id, record.display_name, record.product_code, record.quantity) == ("U1", "小明", "A123", 2)
    assert context.order == record
    assert context.reply_text.startswith("已收到您的訂單：\nFish Tank Kit x 2\n訂單編號：ORD-")
    assert context.reply_text.endswith("在庫中，可出 5")


def test_order_invalid_quantity_halts(assistant, sheets):
    for text in ("下單 Fish Tank x 0", "下單 Fish Tank"):
        context = assistant.handle_message("U1", text)
        assert context.reply_text == INVALID_QUANTITY_REPLY
        assert context.halted
    assert sheets.fetch_count == 0
    assert sheets.orders == []


def test_order_ambiguous_is_not_written(assistant, sheets):
    context = assistant.handle_message("U1", "下單 calendar x 1")
    assert context.reply_text.startswith("找到多個相似品項：")
    assert sheets.orders == []


def test_order_not_found(assistant, sheets):
    context = assistant.handle_message("U1", "下單 Unicorn x 1")
    assert context.reply_text == "找不到「Unicorn」，請確認品名或代碼。"
    assert sheets.orders == []


def test_recent_lists_matches(assistant):
    assert assistant.handle_message("U1", "最近查詢").reply_text == NO_RECENT_REPLY
    assistant.handle_message("U1", "查價 a123\nC1")
    reply = assistant.handle_message("U1", "最近查詢").reply_text
    assert reply == "最近查詢的品項：\nC1｜Curious Frog\nA123｜Fish Tank Kit"


def test_catalog_failure_falls_back(catalog):
    sheets = FakeSheets(catalog, fail_fetch=True)
    assistant = SalesAssistant(catalog=sheets, ledger=sheets, profile_lookup=fake_profile)
    context = assistant.handle_message("U1", "查價 a123")
    assert context.failed
    assert context.reply_text == FALLBACK_REPLY


def test_ledger_failure_falls_back(catalog):
    sheets = FakeSheets(catalog, fail_append=True)
    assistant = SalesAssistant(catalog=sheets, ledger=sheets, profile_lookup=fake_profile)
    context = assistant.handle_message("U1", "下單 a123 x 1")
    assert context.failed
    assert context.reply_text == FALLBACK_REPLY


def test_works_without_recent_cache(catalog):
    sheets = FakeSheets(catalog)
    assistant = SalesAssistant(catalog=sheets, ledger=sheets, profile_lookup=fake_profile)
    assert assistant.handle_message("U1", "最近查詢").reply_text == NO_RECENT_REPLY
    assert assistant.handle_message("U1", "查價 a123").reply_text == "《Fish Tank Kit》\n定價：1200 元"


def test_runner_halt_keeps_always_run_steps():
    calls = []

    class Ctx:
        halted = False

    def halt(ctx):
        calls.append("halt")
        ctx.halted = True

    runner = PipelineRunner(
        steps=[
            PipelineStep("halt", halt),
            PipelineStep("skipped", lambda ctx: calls.append("skipped")),
            PipelineStep("final", lambda ctx: calls.append("final"), always_run=True),
        ]
    )
    assert runner.run(Ctx()) == ["halt", "final"]
    assert calls == ["halt", "final"]


def test_runner_skip_if():
    runner = PipelineRunner(steps=[PipelineStep("a", lambda ctx: None, skip_if=lambda ctx: True)])
    assert runner.run(object()) == []
    assert runner.step_names == ["a"]
