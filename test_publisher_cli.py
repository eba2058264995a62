#!/usr/bin/env python3
"""
Tests for the command line tool. Clients are patched; nothing leaves the process.
"""

import csv
from unittest.mock import MagicMock, patch

import pytest

import publisher_cli
from config import Settings
from pexels_client import SourceImage


@pytest.fixture(autouse=True)
def settings():
    settings = Settings(printify_api_token="tok", printify_shop_id="9001", pexels_api_key="key")
    with patch.object(publisher_cli.Settings, "from_env", return_value=settings):
        yield settings


def test_generate_writes_images_and_sheet(tmp_path, jpeg_data_url):
    pexels = MagicMock()
    pexels.fetch_images.return_value = [
        SourceImage(id="1", url=jpeg_data_url, width=64, height=48, photographer="Sam"),
        SourceImage(id="2", url=str(tmp_path / "missing.jpg"), width=64, height=48),
    ]

    with patch.object(publisher_cli, "PexelsClient", return_value=pexels):
        code = publisher_cli.main(["generate", "--quantity", "2", "--output-dir", str(tmp_path / "out")])

    assert code == 0
    rows = publisher_cli.read_sheet(tmp_path / "out" / "captions.csv")
    assert [row["id"] for row in rows] == ["1", "2"]
    assert all(row["qa_status"] == "pending" for row in rows)
    assert rows[0]["degraded"] == "no"
    assert (tmp_path / "out" / rows[0]["image_file"]).exists()
    assert rows[1]["degraded"] == "yes"
    assert rows[1]["image_file"] == ""


def test_publish_approved_rows_and_write_back_ids(tmp_path, make_jpeg):
    (tmp_path / "wave_1.jpg").write_bytes(make_jpeg())
    rows = [
        {"id": "1", "image_file": "wave_1.jpg", "source_url": "https://x/1.jpg", "caption": "[Waves]",
         "title": "T", "degraded": "no", "qa_status": "approved"},
        {"id": "2", "image_file": "", "source_url": "https://x/2.jpg", "caption": "[Ocean]",
         "title": "T", "degraded": "yes", "qa_status": "rejected"},
    ]
    csv_path = tmp_path / "captions.csv"
    publisher_cli.write_sheet(csv_path, rows)

    printify = MagicMock()
    printify.upload_image.return_value = {"id": "upload-1"}
    printify.create_product.return_value = {"id": "prod-1"}

    with patch.object(publisher_cli.PrintifyClient, "from_settings", return_value=printify):
        code = publisher_cli.main(["publish", "--csv", str(csv_path), "--context", "office"])

    assert code == 0
    assert printify.create_product.call_count == 1
    assert printify.upload_image.call_args.args[0].startswith("data:image/jpeg;base64,")
    with open(csv_path, newline="") as f:
        written = list(csv.DictReader(f))
    assert written[0]["product_id"] == "prod-1"
    assert written[1]["product_id"] == ""


def test_bulk_delete_wrong_phrase_exits_1():
    printify = MagicMock()
    with patch.object(publisher_cli.PrintifyClient, "from_settings", return_value=printify):
        code = publisher_cli.main(["bulk-delete", "--ids", "A", "B", "--confirm", "yes"])
    assert code == 1
    printify.delete_product.assert_not_called()


def test_health_exit_code(capsys):
    printify = MagicMock()
    printify.check_health.return_value = {"status": "unhealthy", "error": "down"}
    with patch.object(publisher_cli.PrintifyClient, "from_settings", return_value=printify):
        assert publisher_cli.main(["health"]) == 1
    assert "unhealthy" in capsys.readouterr().out


def test_unexpected_error_exits_1():
    with patch.object(publisher_cli.PrintifyClient, "from_settings", side_effect=RuntimeError("boom")):
        assert publisher_cli.main(["bulk-publish", "--ids", "A"]) == 1
