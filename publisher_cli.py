#!/usr/bin/env python3
"""
Wave Print Publisher command line.

Usage:
    python publisher_cli.py serve [--port 3001]
    python publisher_cli.py generate --query "ocean waves" --quantity 20 --output-dir exports/batch
    python publisher_cli.py publish --csv exports/batch/captions.csv [--context office]
    python publisher_cli.py bulk-delete --ids ID [ID ...] --confirm "DELETE ALL LISTINGS"
    python publisher_cli.py bulk-publish --ids ID [ID ...] [--shop-id 123]
    python publisher_cli.py health

generate writes one JPEG per photo plus a captions.csv review sheet. Set
qa_status to "approved" on the rows to sell, then run publish on the sheet;
created product ids are written back into it.
"""

import argparse
import base64
import csv
import json
import logging
import sys
from pathlib import Path

from captions import DEFAULT_CONTEXT, LISTING_CONTEXTS
from config import Settings
from errors import ApiError
from image_compositor import STYLES, decode_data_url
from pexels_client import DEFAULT_QUERY, MAX_RESULTS, PexelsClient
from printify_client import PrintifyClient
from workflows.caption_batch import BatchConfig, CaptionedImage, approved, process_batch
from workflows.product_publishing import ProductPublisher

CSV_COLUMNS = [
    "id", "image_file", "source_url", "caption", "title", "photographer",
    "degraded", "qa_status", "product_id", "publish_error",
]


def read_sheet(csv_path: Path) -> list[dict]:
    with open(csv_path, "r", encoding="utf-8", newline="") as f:
        return list(csv.DictReader(f))


def write_sheet(csv_path: Path, rows: list[dict]) -> None:
    with open(csv_path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)


def row_to_image(row: dict, base_dir: Path) -> CaptionedImage:
    """Rebuild a reviewed image from its sheet row (file on disk, else source URL)."""
    processed = row.get("source_url", "")
    image_file = row.get("image_file")
    if image_file and (base_dir / image_file).exists():
        data = (base_dir / image_file).read_bytes()
        processed = "data:image/jpeg;base64," + base64.b64encode(data).decode("ascii")

    return CaptionedImage(
        id=row["id"],
        original=row.get("source_url", ""),
        processed=processed,
        caption=row.get("caption", ""),
        title=row.get("title", ""),
        filename=Path(image_file).stem if image_file else row["id"],
        photographer=row.get("photographer", ""),
        degraded=row.get("degraded") == "yes",
        status=(row.get("qa_status") or "pending").strip().lower(),
    )


def cmd_serve(args, settings):
    from publisher_web import create_app

    app = create_app(settings)
    port = args.port or settings.port
    logging.info("Serving on http://127.0.0.1:%d", port)
    app.run(host="127.0.0.1", port=port, debug=False, threaded=True)
    return 0


def cmd_generate(args, settings):
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    sources = PexelsClient(settings.pexels_api_key).fetch_images(args.query, args.quantity)
    logging.info("Fetched %d source images", len(sources))

    def progress(done, total, item):
        logging.info("[%d/%d] %s - %s", done, total, item.id, "passthrough" if item.degraded else "captioned")

    config = BatchConfig(style=args.style, target_count=args.quantity)
    rows = []
    for item in process_batch(sources, config, progress):
        image_file = ""
        if item.processed.startswith("data:"):
            image_file = f"{item.filename}.jpg"
            (output_dir / image_file).write_bytes(decode_data_url(item.processed))

        rows.append({
            "id": item.id,
            "image_file": image_file,
            "source_url": item.original,
            "caption": item.caption,
            "title": item.title,
            "photographer": item.photographer,
            "degraded": "yes" if item.degraded else "no",
            "qa_status": item.status,
        })

    csv_path = output_dir / "captions.csv"
    write_sheet(csv_path, rows)
    logging.info("Wrote %d rows to %s", len(rows), csv_path)
    return 0


def cmd_publish(args, settings):
    csv_path = Path(args.csv)
    if not csv_path.exists():
        logging.error("CSV not found: %s", csv_path)
        return 1

    rows = read_sheet(csv_path)
    images = [row_to_image(row, csv_path.parent) for row in rows if not row.get("product_id")]
    to_publish = approved(images)
    if not to_publish:
        logging.info("No approved rows without a product id in %s", csv_path)
        return 0

    logging.info("Publishing %d approved images (%s context)", len(to_publish), args.context)
    publisher = ProductPublisher(PrintifyClient.from_settings(settings))
    summary = publisher.create_products(to_publish, context=args.context)

    outcomes = {result.image_id: result for result in summary.results}
    for row in rows:
        result = outcomes.get(row["id"])
        if result is None:
            continue
        if result.success:
            row["product_id"] = result.product_id
            row["publish_error"] = ""
        else:
            row["publish_error"] = result.error

    write_sheet(csv_path, rows)
    print(json.dumps(summary.to_dict(), indent=2))
    return 0 if summary.failed == 0 else 1


def cmd_bulk_delete(args, settings):
    publisher = ProductPublisher(PrintifyClient.from_settings(settings))
    summary = publisher.bulk_delete(args.ids, args.confirm)
    print(json.dumps(summary.to_dict(), indent=2))
    return 0 if summary.failed == 0 else 1


def cmd_bulk_publish(args, settings):
    publisher = ProductPublisher(PrintifyClient.from_settings(settings))
    summary = publisher.bulk_publish(args.ids, args.shop_id)
    print(json.dumps(summary.to_dict(), indent=2))
    return 0 if summary.failed == 0 else 1


def cmd_health(args, settings):
    health = PrintifyClient.from_settings(settings).check_health()
    print(json.dumps(health, indent=2))
    return 0 if health["status"] == "healthy" else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Caption wave photos and publish them as Printify posters")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the web API")
    serve.add_argument("--port", type=int, help="Port (default: PORT setting)")
    serve.set_defaults(func=cmd_serve)

    generate = subparsers.add_parser("generate", help="Fetch photos and caption them")
    generate.add_argument("--query", default=DEFAULT_QUERY, help="Pexels search query")
    generate.add_argument("--quantity", type=int, default=MAX_RESULTS, help=f"Images to fetch (max {MAX_RESULTS})")
    generate.add_argument("--style", choices=sorted(STYLES), default="print_ready")
    generate.add_argument("--output-dir", default="exports/captioned", help="Where to write JPEGs and captions.csv")
    generate.set_defaults(func=cmd_generate)

    publish = subparsers.add_parser("publish", help="Create products for approved rows")
    publish.add_argument("--csv", required=True, help="captions.csv written by generate")
    publish.add_argument("--context", choices=sorted(LISTING_CONTEXTS), default=DEFAULT_CONTEXT,
                         help="Room context for listing copy")
    publish.set_defaults(func=cmd_publish)

    bulk_delete = subparsers.add_parser("bulk-delete", help="Delete products")
    bulk_delete.add_argument("--ids", nargs="+", required=True, help="Product ids")
    bulk_delete.add_argument("--confirm", required=True, help='Must be exactly "DELETE ALL LISTINGS"')
    bulk_delete.set_defaults(func=cmd_bulk_delete)

    bulk_publish = subparsers.add_parser("bulk-publish", help="Publish products")
    bulk_publish.add_argument("--ids", nargs="+", required=True, help="Product ids")
    bulk_publish.add_argument("--shop-id", help="Shop id (default: PRINTIFY_SHOP_ID)")
    bulk_publish.set_defaults(func=cmd_bulk_publish)

    health = subparsers.add_parser("health", help="Check the Printify connection")
    health.set_defaults(func=cmd_health)

    return parser


def main(argv=None):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    settings.warn_missing_credentials()

    try:
        return args.func(args, settings)
    except ApiError as e:
        logging.error("%s failed: %s", args.command, e.message)
        return 1
    except Exception:
        logging.exception("%s failed", args.command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
