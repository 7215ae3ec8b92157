"""Sales report generation backed by a text-generation API with a local fallback."""
from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import httpx

from .config import Settings
from .exceptions import ReportGenerationError
from .records import Sale

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No sales data found for the selected period."
TOP_SALES_THRESHOLD = 10
TOP_PRODUCTS_LIMIT = 5

TextGenerator = Callable[[str], Awaitable[str]]
SalesSnapshot = Union[str, Sequence[Union[Sale, Mapping[str, Any]]]]

PROMPT_TEMPLATE = """You are an AI assistant tasked with generating sales reports.

The report should cover the period from {start_date} to {end_date}.

Here is the sales data in JSON format:
{sales_data}

{filter_hint}

Generate a concise summary of the sales report, highlighting:
- Total sales
- Top-selling items
- Sales trends over the specified period
"""


def should_filter_by_top_sales(sales_data: str) -> bool:
    """True when the JSON array holds more than ``TOP_SALES_THRESHOLD`` records."""

    try:
        records = json.loads(sales_data)
    except (TypeError, ValueError) as exc:
        logger.warning("Error parsing sales data: %s", exc)
        return False
    if not isinstance(records, list) or not records:
        return False
    return len(records) > TOP_SALES_THRESHOLD


def build_prompt(start_date: date, end_date: date, sales_data: str) -> str:
    if should_filter_by_top_sales(sales_data):
        hint = "The sales data should be filtered to only show top sales."
    else:
        hint = "The sales data should not be filtered."
    return PROMPT_TEMPLATE.format(
        start_date=start_date.isoformat(),
        end_date=end_date.isoformat(),
        sales_data=sales_data,
        filter_hint=hint,
    )


def serialize_sales(sales: SalesSnapshot) -> str:
    if isinstance(sales, str):
        return sales
    return json.dumps(
        [sale.to_dict() if isinstance(sale, Sale) else dict(sale) for sale in sales],
        ensure_ascii=False,
    )


def _decode_sales(sales_data: str) -> List[Sale]:
    try:
        records = json.loads(sales_data)
    except (TypeError, ValueError):
        return []
    if not isinstance(records, list):
        return []
    decoded: List[Sale] = []
    for record in records:
        try:
            decoded.append(Sale.from_record(record))
        except (KeyError, TypeError, ValueError):
            logger.debug("Skipping malformed sale record: %r", record)
    return decoded


def local_sales_summary(start_date: date, end_date: date, sales: SalesSnapshot) -> str:
    """Deterministic summary: sale count, total amount and top products by quantity."""

    decoded = _decode_sales(serialize_sales(sales))
    total_amount = round(sum(sale.total_amount for sale in decoded), 2)

    # Insertion order breaks ties: sorted() is stable.
    totals: Dict[str, Dict[str, Any]] = {}
    for sale in decoded:
        entry = totals.setdefault(
            sale.product_id, {"name": sale.product_name, "quantity": 0, "amount": 0.0}
        )
        entry["quantity"] += sale.quantity
        entry["amount"] += sale.total_amount
    ranked = sorted(totals.values(), key=lambda entry: entry["quantity"], reverse=True)

    lines = [
        f"Sales report for {start_date.isoformat()} to {end_date.isoformat()}",
        f"Total sales: {len(decoded)} totaling {total_amount:.2f}",
    ]
    if ranked:
        lines.append("Top products by quantity sold:")
        for position, entry in enumerate(ranked[:TOP_PRODUCTS_LIMIT], start=1):
            lines.append(
                f"{position}. {entry['name']}: {entry['quantity']} units ({entry['amount']:.2f})"
            )
    return "\n".join(lines)


class GeminiTextGenerator:
    """Calls the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.0-flash",
        api_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def __call__(self, prompt: str) -> str:
        url = f"{self.api_url}/models/{self.model}:generateContent"
        body = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=body, headers={"x-goog-api-key": self.api_key})
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ReportGenerationError(f"Text generation request failed: {exc}") from exc
        try:
            parts = payload["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise ReportGenerationError(f"Unexpected text generation response: {exc}") from exc
        return text


class SalesReportGenerator:
    """Produces a natural-language sales summary, falling back to a local one."""

    def __init__(self, generator: Optional[TextGenerator] = None) -> None:
        self.generator = generator

    @classmethod
    def from_settings(cls, settings: Settings) -> "SalesReportGenerator":
        if not settings.report_api_key:
            logger.info("No report API key configured; reports use the local summary")
            return cls(None)
        return cls(
            GeminiTextGenerator(
                settings.report_api_key,
                model=settings.report_model,
                api_url=settings.report_api_url,
                timeout=max(settings.request_timeout, 30.0),
            )
        )

    async def generate(self, start_date: date, end_date: date, sales: SalesSnapshot) -> str:
        """Summarize a non-empty sales snapshot for the given period."""

        sales_data = serialize_sales(sales)
        try:
            if self.generator is None:
                raise ReportGenerationError("No text generation backend configured")
            if not isinstance(json.loads(sales_data), list):
                raise ReportGenerationError("Sales data must be a JSON array")
            summary = await self.generator(build_prompt(start_date, end_date, sales_data))
            if not summary or not summary.strip():
                raise ReportGenerationError("Text generation returned an empty summary")
            return summary.strip()
        except Exception as exc:
            logger.warning("Falling back to the local sales summary: %s", exc)
            return local_sales_summary(start_date, end_date, sales_data)


async def build_sales_report(
    generator: SalesReportGenerator,
    start_date: date,
    end_date: date,
    sales: Iterable[Sale],
) -> str:
    """Filter ``sales`` to the period and summarize them, or report that there are none."""

    if start_date > end_date:
        start_date, end_date = end_date, start_date
    in_range = [sale for sale in sales if sale.falls_within(start_date, end_date)]
    if not in_range:
        return NO_DATA_MESSAGE
    return await generator.generate(start_date, end_date, in_range)


__all__ = [
    "GeminiTextGenerator",
    "NO_DATA_MESSAGE",
    "SalesReportGenerator",
    "TextGenerator",
    "build_prompt",
    "build_sales_report",
    "local_sales_summary",
    "serialize_sales",
    "should_filter_by_top_sales",
]
