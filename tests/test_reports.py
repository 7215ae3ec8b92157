from __future__ import annotations

import json
from datetime import date

import httpx
import pytest

from kitchen_command.exceptions import ReportGenerationError
from kitchen_command.records import Sale
from kitchen_command.reports import (
    NO_DATA_MESSAGE,
    GeminiTextGenerator,
    SalesReportGenerator,
    build_prompt,
    build_sales_report,
    local_sales_summary,
    should_filter_by_top_sales,
)

START = date(2024, 5, 1)
END = date(2024, 5, 31)


def _sale(sale_id: str, product_id: str, name: str, quantity: int, amount: float, day: int = 10) -> Sale:
    return Sale(
        id=sale_id,
        product_id=product_id,
        product_name=name,
        quantity=quantity,
        total_amount=amount,
        date=f"2024-05-{day:02d}T12:00:00.000Z",
    )


SALES = [
    _sale("s1", "p1", "Chef's Knife", 3, 239.97),
    _sale("s2", "p2", "Skillet", 5, 227.5),
    _sale("s3", "p3", "Scale", 3, 75.0),
    _sale("s4", "p4", "Spatula Set", 1, 19.99),
    _sale("s5", "p5", "Frying Pan", 2, 70.0),
    _sale("s6", "p6", "Whisk", 3, 29.97),
    _sale("s7", "p1", "Chef's Knife", 1, 79.99),
]


class RecordingGenerator:
    def __init__(self, reply: str = "Sales were strong.") -> None:
        self.reply = reply
        self.prompts = []

    async def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


class FailingGenerator:
    async def __call__(self, prompt: str) -> str:
        raise ReportGenerationError("backend down")


def test_top_sales_hint_threshold() -> None:
    assert should_filter_by_top_sales(json.dumps([{}] * 11)) is True
    assert should_filter_by_top_sales(json.dumps([{}] * 10)) is False
    assert should_filter_by_top_sales("[]") is False
    assert should_filter_by_top_sales("{}") is False
    assert should_filter_by_top_sales("not json") is False


def test_prompt_carries_period_data_and_hint() -> None:
    data = json.dumps([{}] * 12)
    prompt = build_prompt(START, END, data)

    assert "from 2024-05-01 to 2024-05-31" in prompt
    assert data in prompt
    assert "should be filtered to only show top sales" in prompt
    assert "should not be filtered" in build_prompt(START, END, "[]")


def test_local_summary_ranks_top_five_by_quantity() -> None:
    summary = local_sales_summary(START, END, SALES)
    lines = summary.splitlines()

    assert lines[0] == "Sales report for 2024-05-01 to 2024-05-31"
    assert lines[1] == "Total sales: 7 totaling 742.42"
    assert lines[2] == "Top products by quantity sold:"
    assert lines[3:] == [
        "1. Skillet: 5 units (227.50)",
        "2. Chef's Knife: 4 units (319.96)",
        "3. Scale: 3 units (75.00)",
        "4. Whisk: 3 units (29.97)",
        "5. Frying Pan: 2 units (70.00)",
    ]


def test_local_summary_is_deterministic() -> None:
    first = local_sales_summary(START, END, SALES)
    assert all(local_sales_summary(START, END, list(SALES)) == first for _ in range(5))


def test_local_summary_skips_malformed_records() -> None:
    data = json.dumps([{"id": "broken"}, SALES[0].to_dict()])
    summary = local_sales_summary(START, END, data)
    assert "Total sales: 1 totaling 239.97" in summary


async def test_generate_uses_backend_output() -> None:
    backend = RecordingGenerator("  Knives led the month.  ")
    report = await SalesReportGenerator(backend).generate(START, END, SALES)

    assert report == "Knives led the month."
    assert len(backend.prompts) == 1
    assert '"productName": "Chef\'s Knife"' in backend.prompts[0]


@pytest.mark.parametrize(
    "backend",
    [None, FailingGenerator(), RecordingGenerator("   ")],
    ids=["unconfigured", "failing", "empty"],
)
async def test_generate_falls_back_to_local_summary(backend) -> None:
    report = await SalesReportGenerator(backend).generate(START, END, SALES)
    assert report == local_sales_summary(START, END, SALES)


async def test_generate_falls_back_on_malformed_snapshot() -> None:
    backend = RecordingGenerator()
    report = await SalesReportGenerator(backend).generate(START, END, "{oops")

    assert backend.prompts == []
    assert "Total sales: 0 totaling 0.00" in report


async def test_empty_period_skips_the_generator() -> None:
    backend = RecordingGenerator()
    generator = SalesReportGenerator(backend)

    report = await build_sales_report(generator, date(2023, 1, 1), date(2023, 1, 31), SALES)

    assert report == NO_DATA_MESSAGE
    assert backend.prompts == []


async def test_build_report_filters_to_period() -> None:
    backend = RecordingGenerator()
    june = Sale(
        id="june",
        product_id="p9",
        product_name="Dutch Oven",
        quantity=9,
        total_amount=800.0,
        date="2024-06-01T00:00:00.000Z",
    )
    sales = SALES + [june]

    await build_sales_report(SalesReportGenerator(backend), START, END, sales)

    assert "Dutch Oven" not in backend.prompts[0]
    assert "Skillet" in backend.prompts[0]


async def test_gemini_generator_parses_candidates() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers["x-goog-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": "Part one. "}, {"text": "Part two."}]}}]},
        )

    generator = GeminiTextGenerator(
        "secret", model="test-model", api_url="https://ai.test/v1", transport=httpx.MockTransport(handler)
    )
    text = await generator("Summarize")

    assert text == "Part one. Part two."
    assert seen["url"] == "https://ai.test/v1/models/test-model:generateContent"
    assert seen["key"] == "secret"
    assert seen["body"]["contents"][0]["parts"][0]["text"] == "Summarize"


async def test_gemini_generator_wraps_errors() -> None:
    generator = GeminiTextGenerator(
        "secret", transport=httpx.MockTransport(lambda request: httpx.Response(503))
    )
    with pytest.raises(ReportGenerationError):
        await generator("Summarize")

    odd = GeminiTextGenerator(
        "secret", transport=httpx.MockTransport(lambda request: httpx.Response(200, json={}))
    )
    with pytest.raises(ReportGenerationError):
        await odd("Summarize")
