"""
Tests for CSV rendering and the export workflow.
"""
import csv
import io

import pytest

from src.exports import CSV_HEADINGS, EXPORT_FILENAME, ExportService, export_to_csv, save_csv
from src.koinly import AssetAmount, ExportConfig, PageFetchError, Transaction


def make_tx(**overrides):
    fields = dict(
        date="2023-03-01T10:00:00.000Z",
        sent=AssetAmount(amount="1.5", symbol="BTC"),
        received=AssetAmount(amount="42000", symbol="USDT"),
        fee=AssetAmount(amount="0.0001", symbol="BTC"),
        net_value="42000",
        label="exchange",
        description="Binance trade",
        tx_hash="0xdeadbeef",
    )
    fields.update(overrides)
    return Transaction(**fields)


def parse(content):
    return list(csv.reader(io.StringIO(content)))


def test_header_is_fixed():
    content = export_to_csv("USD", [])

    assert content.splitlines() == [",".join(CSV_HEADINGS)]
    assert CSV_HEADINGS == [
        "Date", "Sent Amount", "Sent Currency", "Received Amount", "Received Currency",
        "Fee Amount", "Fee Currency", "Net Worth Amount", "Net Worth Currency",
        "Label", "Description", "TxHash",
    ]


def test_full_row_layout():
    content = export_to_csv("GBP", [make_tx()])

    assert content.splitlines()[1] == (
        "2023-03-01T10:00:00.000Z,1.5,BTC,42000,USDT,0.0001,BTC,42000,GBP,exchange,Binance trade,0xdeadbeef"
    )


def test_missing_fee_renders_empty_fee_columns():
    rows = parse(export_to_csv("USD", [make_tx(fee=None)]))

    assert rows[1][5] == ""
    assert rows[1][6] == ""


def test_deposit_without_sent_side():
    rows = parse(export_to_csv("USD", [make_tx(sent=None, label="crypto_deposit")]))

    assert rows[1][1:3] == ["", ""]
    assert rows[1][3:5] == ["42000", "USDT"]


def test_missing_scalars_are_empty_not_none():
    tx = make_tx(net_value=None, description=None, tx_hash=None)

    row = parse(export_to_csv("USD", [tx]))[1]

    assert row[7] == ""
    assert row[10] == ""
    assert row[11] == ""
    assert "None" not in export_to_csv("USD", [tx])


def test_base_currency_on_every_row_and_order_kept():
    page_one = make_tx(tx_hash="0xpage1")
    page_two = make_tx(tx_hash="0xpage2")

    content = export_to_csv("USD", [page_one, page_two])

    lines = content.splitlines()
    assert len(lines) == 3
    rows = parse(content)
    assert [row[8] for row in rows[1:]] == ["USD", "USD"]
    assert [row[11] for row in rows[1:]] == ["0xpage1", "0xpage2"]


def test_description_with_comma_keeps_columns_aligned():
    content = export_to_csv("USD", [make_tx(description='Sent to "cold", wallet\nledger')])

    rows = parse(content)
    assert len(rows[1]) == 12
    assert rows[1][10] == 'Sent to "cold", wallet\nledger'
    assert rows[1][11] == "0xdeadbeef"


def test_save_csv_writes_utf8_file(tmp_path):
    content = export_to_csv("EUR", [make_tx(description="Café payment")])

    path = save_csv(content, tmp_path / "out")

    assert path == tmp_path / "out" / "Koinly Transactions.csv"
    assert path.read_text(encoding="utf-8") == content


def test_export_to_csv_optionally_writes(tmp_path):
    target = tmp_path / "export.csv"

    content = export_to_csv("USD", [make_tx()], output_path=target)

    assert target.read_text(encoding="utf-8") == content


# -----------------------------------------------------------------------------
# Export Service
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_generate_export_end_to_end(tmp_path, credentials, fake_api, recording_sleep):
    api = fake_api(total_pages=12, per_page=2, base_currency="USD")
    service = ExportService(
        credentials,
        output_dir=tmp_path,
        transport=api.transport,
        sleep=recording_sleep,
    )

    result = await service.generate_export()

    assert result["success"] is True
    assert result["filename"] == EXPORT_FILENAME
    assert result["transaction_count"] == 24
    assert result["total_pages"] == 12
    assert result["base_currency"] == "USD"
    assert api.pages_requested == list(range(1, 13))
    assert len(recording_sleep.delays) == 11 + 1  # one checkpoint after page 10

    rows = parse((tmp_path / EXPORT_FILENAME).read_text(encoding="utf-8"))
    assert rows[0] == CSV_HEADINGS
    assert len(rows) == 25
    assert rows[1][11] == "0xp1t0"
    assert rows[-1][11] == "0xp12t1"
    assert all(row[8] == "USD" for row in rows[1:])


@pytest.mark.asyncio
async def test_generate_export_uses_configured_page_size(tmp_path, credentials, fake_api, recording_sleep):
    api = fake_api(total_pages=1)
    service = ExportService(
        credentials,
        output_dir=tmp_path,
        config=ExportConfig(page_size=50),
        transport=api.transport,
        sleep=recording_sleep,
    )

    await service.generate_export()

    page_requests = [r for r in api.requests if r.url.path == "/api/transactions"]
    assert page_requests[0].url.params["per_page"] == "50"


@pytest.mark.asyncio
async def test_page_failure_leaves_no_csv(tmp_path, credentials, fake_api, recording_sleep):
    api = fake_api(total_pages=10, fail_page=3)
    service = ExportService(
        credentials,
        output_dir=tmp_path,
        transport=api.transport,
        sleep=recording_sleep,
    )

    with pytest.raises(PageFetchError) as exc_info:
        await service.generate_export()

    assert exc_info.value.page_index == 3
    assert api.pages_requested == [1, 2, 3]
    assert not (tmp_path / EXPORT_FILENAME).exists()
