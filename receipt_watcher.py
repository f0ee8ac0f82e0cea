#!/usr/bin/env python3
"""
Receipt Folder Watcher

Watches a folder for new receipt photos and uploads each one to the
extraction API. Extracted receipts are moved to a processed folder; uploads
the API rejects are moved to a failed folder for a manual look.

Usage:
    python receipt_watcher.py --watch-folder ./receipts-incoming
"""

import argparse
import json
import time
from datetime import datetime
from pathlib import Path

import requests
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

DEFAULT_API_URL = "http://127.0.0.1:3000"
EXTRACT_PATH = "/receipt/extract-receipt-details"

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}


class ReceiptHandler(FileSystemEventHandler):
    """Handles new receipt image events"""

    def __init__(self, watch_folder, processed_folder, failed_folder, api_url=DEFAULT_API_URL):
        self.watch_folder = Path(watch_folder)
        self.processed_folder = Path(processed_folder)
        self.failed_folder = Path(failed_folder)
        self.api_url = api_url.rstrip("/")
        self.processed_files = set()

        self.processed_folder.mkdir(parents=True, exist_ok=True)
        self.failed_folder.mkdir(parents=True, exist_ok=True)

    def on_created(self, event):
        """Called when a file is created in the watched folder"""
        if event.is_directory:
            return

        file_path = Path(event.src_path)

        if file_path.suffix.lower() not in MIME_TYPES:
            return

        if file_path in self.processed_files:
            return

        # Give the writer a moment to finish the file
        time.sleep(1)

        if not file_path.exists():
            return

        self.processed_files.add(file_path)
        self.process_receipt(file_path)

    def process_receipt(self, file_path: Path):
        """Upload a receipt image to the extraction API"""
        print("\n" + "=" * 70)
        print(f"🧾 NEW RECEIPT: {file_path.name}")
        print("=" * 70)
        print(f"Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"Size: {file_path.stat().st_size:,} bytes")
        print()

        mime_type = MIME_TYPES[file_path.suffix.lower()]

        try:
            print("🔄 Uploading to API...")
            with open(file_path, "rb") as f:
                files = {"file": (file_path.name, f, mime_type)}
                response = requests.post(f"{self.api_url}{EXTRACT_PATH}", files=files, timeout=120)

            if response.status_code == 200:
                self.handle_success(file_path, response.json())
            else:
                print(f"❌ API Error: {response.status_code}")
                print(f"   {response.text}")
                self.handle_error(file_path, f"API returned {response.status_code}")

        except requests.exceptions.Timeout:
            print("⏱️  Request timed out (OCR on large photos can be slow)")
            self.handle_error(file_path, "Timeout")
        except requests.exceptions.RequestException as e:
            print(f"❌ Error: {e}")
            self.handle_error(file_path, str(e))

    def handle_success(self, file_path: Path, receipt: dict):
        """Report the extracted receipt and file the image away"""
        print()
        print("📊 EXTRACTION RESULTS:")
        print(f"   Vendor: {receipt['vendor_name'] or 'N/A'}")
        print(f"   Date: {receipt['date'] or 'N/A'}")
        print(f"   Items: {len(receipt['receipt_items'])}")
        print(f"   Tax: {receipt['tax']}")
        amount = f"{receipt['currency']} {receipt['total']}".strip()
        print(f"   Total: {amount}")
        print(f"   Image: {receipt['image_url']}")

        dest_path = self.processed_folder / file_path.name
        file_path.rename(dest_path)
        print(f"\n📁 Moved to: {dest_path}")

        self.log_processing(file_path.name, "extracted", receipt, dest_path)
        print("=" * 70)

    def handle_error(self, file_path: Path, error_msg: str):
        """Move a receipt that could not be processed to the failed folder"""
        print(f"\n❌ Processing failed: {error_msg}")

        dest_path = self.failed_folder / f"ERROR_{file_path.name}"
        file_path.rename(dest_path)
        print(f"📁 Moved to: {dest_path}")

        self.log_processing(file_path.name, "failed", {"error": error_msg}, dest_path)
        print("=" * 70)

    def log_processing(self, filename: str, status: str, data: dict, dest_path: Path):
        """Append the outcome to processing_log.json next to the watch folder"""
        log_file = self.watch_folder.parent / "processing_log.json"

        log_data = []
        if log_file.exists():
            try:
                log_data = json.loads(log_file.read_text(encoding="utf-8"))
            except json.JSONDecodeError:
                print(f"⚠️  {log_file} is not valid JSON, starting a new log")

        log_data.append({
            "timestamp": datetime.now().isoformat(),
            "filename": filename,
            "status": status,
            "receipt_id": data.get("id"),
            "data": data,
            "destination": str(dest_path)
        })

        log_file.write_text(json.dumps(log_data, indent=2), encoding="utf-8")


def main():
    parser = argparse.ArgumentParser(
        description="Watch a folder for receipt photos and extract them automatically"
    )
    parser.add_argument(
        "--watch-folder",
        default="./receipts-incoming",
        help="Folder to watch for new receipts (default: ./receipts-incoming)"
    )
    parser.add_argument(
        "--processed-folder",
        default="./receipts-processed",
        help="Folder for extracted receipts (default: ./receipts-processed)"
    )
    parser.add_argument(
        "--failed-folder",
        default="./receipts-failed",
        help="Folder for receipts that failed (default: ./receipts-failed)"
    )
    parser.add_argument(
        "--api-url",
        default=DEFAULT_API_URL,
        help=f"API base URL (default: {DEFAULT_API_URL})"
    )

    args = parser.parse_args()

    watch_folder = Path(args.watch_folder)
    watch_folder.mkdir(parents=True, exist_ok=True)

    event_handler = ReceiptHandler(
        args.watch_folder,
        args.processed_folder,
        args.failed_folder,
        api_url=args.api_url
    )
    observer = Observer()
    observer.schedule(event_handler, str(watch_folder), recursive=False)
    observer.start()

    print("=" * 70)
    print("🔍 RECEIPT WATCHER")
    print("=" * 70)
    print(f"Watching: {watch_folder.absolute()}")
    print(f"Extracted → {Path(args.processed_folder).absolute()}")
    print(f"Failed → {Path(args.failed_folder).absolute()}")
    print(f"API: {args.api_url}")
    print()
    print("💡 Drop JPEG or PNG receipts into the watch folder to process them")
    print("Press Ctrl+C to stop")
    print("=" * 70)
    print()

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\n\n👋 Stopping watcher...")
        observer.stop()

    observer.join()
    print("✅ Watcher stopped")


if __name__ == "__main__":
    main()
