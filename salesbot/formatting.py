from __future__ import annotations

import re
from typing import Iterable, List

from .catalog import Product
from .utils import format_amount

NO_KEYWORD_REPLY = "請輸入品名或代碼。"
NOT_FOUND_TEMPLATE = "找不到「{keyword}」，請確認品名或代碼。"
MULTI_MATCH_HEADER = "找到多個相似品項："
MULTI_MATCH_PROMPT = "請輸入更明確的品名或代碼。"
CODE_LOOKUP_EMPTY_REPLY = "找不到符合的品項。"
INVALID_QUANTITY_REPLY = "數量需要是正整數。"
NO_RECENT_REPLY = "目前沒有最近查詢的品項。"
RECENT_HEADER = "最近查詢的品項："
FALLBACK_REPLY = "系統忙碌中，請稍後再試。"
HELP_REPLY = (
    "您可以輸入：\n"
    "• 查價 商品名\n"
    "• 庫存 商品名\n"
    "• 下單 商品名 x 數量\n"
    "• 查編號 商品名\n\n"
    "也支援多行多書名輸入（逐行查詢）。"
)

PRESENT_MARK = "有"
ABSENT_MARK = "無"

_NUMBER_RE = re.compile(r"^[+-]?\d+(?:\.\d+)?$")


def format_price(product: Product) -> str:
    return f"定價：{format_amount(product.price)} 元"


def _out_of_stock(product: Product, unknown_eta: str = "缺貨") -> str:
    if product.restock_eta:
        return f"缺貨，預計補貨日：{product.restock_eta}"
    return unknown_eta


def format_stock(product: Product) -> str:
    """Purpose: Turn the raw stock cell into a customer-facing status line.
    Inputs/Outputs: Input is a Product; output is the status text without label.
    Side Effects / State: None.
    Dependencies: Uses PRESENT_MARK/ABSENT_MARK and the restock ETA.
    Failure Modes: Unknown text is echoed as-is (e.g. "調貨中", "門市限定").
    If Removed: Replies would expose raw cell values like "0" or "無".
    Testing Notes: Cover blank, 有, 無, positive, zero and free-text cells.
    """
    # Blank, presence marks, numbers, then free text.
    stock = product.stock.strip()
    if not stock:
        return _out_of_stock(product, unknown_eta="缺貨（待確認補貨日）")
    if stock == PRESENT_MARK:
        return "有貨"
    if stock == ABSENT_MARK:
        return _out_of_stock(product)
    if _NUMBER_RE.match(stock):
        count = float(stock)
        if count > 0:
            return f"在庫中，可出 {format_amount(count)}"
        return _out_of_stock(product)
    return stock


def format_not_found(keyword: str) -> str:
    return NOT_FOUND_TEMPLATE.format(keyword=keyword)


def format_candidates(products: Iterable[Product]) -> str:
    lines = "\n".join(product.label for product in products)
    return f"{MULTI_MATCH_HEADER}\n{lines}\n{MULTI_MATCH_PROMPT}"


def format_product(product: Product, wants_price: bool, wants_stock: bool) -> str:
    """Block for a single resolved product; both lines when neither flag is set."""
    show_both = not wants_price and not wants_stock
    lines = [f"《{product.name}》"]
    if wants_price or show_both:
        lines.append(format_price(product))
    if wants_stock or show_both:
        lines.append(f"庫存：{format_stock(product)}")
    return "\n".join(lines)


def format_code_line(product: Product) -> str:
    return f"{product.code} {product.name}".strip()


def format_order_confirmation(product: Product, quantity: int, order_id: str) -> str:
    return f"已收到您的訂單：\n{product.name} x {quantity}\n訂單編號：{order_id}\n{format_stock(product)}"


def join_blocks(blocks: Iterable[str]) -> str:
    return "\n\n".join(block.strip() for block in blocks if block and block.strip())


def chunk_message(text: str, size: int = 1400) -> List[str]:
    """Purpose: Split a reply into transport-sized chunks.
    Inputs/Outputs: Input is text and chunk size; output is a list of chunks.
    Side Effects / State: None.
    Dependencies: None; used by the LINE reply client.
    Failure Modes: Non-positive size raises ValueError; empty text returns [].
    If Removed: Long batch replies are rejected by the messaging API.
    Testing Notes: A 3000-char reply with size 1400 yields 3 chunks.
    """
    # Prefer cutting on a blank line or newline inside each window.
    if size <= 0:
        raise ValueError("chunk size must be positive")
    chunks: List[str] = []
    remaining = text or ""
    while remaining:
        if len(remaining) <= size:
            chunks.append(remaining)
            break
        window = remaining[:size]
        cut = window.rfind("\n\n")
        if cut <= 0:
            cut = window.rfind("\n")
        if cut <= 0:
            cut = size
        chunks.append(remaining[:cut].rstrip("\n"))
        remaining = remaining[cut:].lstrip("\n")
    return [chunk for chunk in chunks if chunk]
