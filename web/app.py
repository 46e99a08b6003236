#!/usr/bin/env python3
"""
Smart Image Compressor - Flask Web Application

A local web API for image compression with real-time progress tracking.
"""

import logging
import tempfile
import threading
import time
import uuid
from pathlib import Path
from typing import Dict

from flask import (
    Flask,
    jsonify,
    request,
    send_file,
)
from flask_cors import CORS
from werkzeug.utils import secure_filename

# Add parent directory to path to import imagecompress
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from imagecompress import ImageAnalyzer, ImageFormat, __version__, compress_file, get_search_config
from imagecompress.compressor import SEARCH_PRESETS
from imagecompress.formats import ALLOWED_EXTENSIONS
from imagecompress.utils import format_size, parse_size

app = Flask(__name__)
CORS(app)

# Configuration
app.config["UPLOAD_FOLDER"] = Path(tempfile.gettempdir()) / "imgcompress_uploads"
app.config["OUTPUT_FOLDER"] = Path(tempfile.gettempdir()) / "imgcompress_output"
app.config["MAX_CONTENT_LENGTH"] = 50 * 1024 * 1024  # 50MB max upload
app.config["FILE_MAX_AGE_HOURS"] = 1

# Job tracking
jobs: Dict[str, dict] = {}
jobs_lock = threading.Lock()


def upload_folder() -> Path:
    folder = Path(app.config["UPLOAD_FOLDER"])
    folder.mkdir(parents=True, exist_ok=True)
    return folder


def output_folder() -> Path:
    folder = Path(app.config["OUTPUT_FOLDER"])
    folder.mkdir(parents=True, exist_ok=True)
    return folder


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def cleanup_old_files(max_age_hours: int = 1):
    """Clean up files older than max_age_hours."""
    now = time.time()
    max_age_seconds = max_age_hours * 3600

    for folder in [upload_folder(), output_folder()]:
        for file_path in folder.iterdir():
            if file_path.is_file():
                age = now - file_path.stat().st_mtime
                if age > max_age_seconds:
                    try:
                        file_path.unlink()
                    except OSError as e:
                        app.logger.warning("Could not remove %s: %s", file_path, e)


@app.route("/")
def index():
    """Describe the service."""
    return jsonify({
        "name": "Smart Image Compressor",
        "version": __version__,
        "formats": [fmt.value for fmt in ImageFormat],
        "precisions": list(SEARCH_PRESETS),
        "endpoints": [
            "POST /api/upload",
            "POST /api/compress",
            "GET /api/job/<job_id>",
            "GET /api/download/<job_id>",
            "GET /api/report/<job_id>",
        ],
    })


@app.route("/api/upload", methods=["POST"])
def upload_file():
    """Handle image upload and return analysis."""
    cleanup_old_files(app.config["FILE_MAX_AGE_HOURS"])

    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400

    file = request.files["file"]

    if file.filename == "":
        return jsonify({"error": "No file selected"}), 400

    if not allowed_file(file.filename):
        allowed = ", ".join(sorted(ALLOWED_EXTENSIONS))
        return jsonify({"error": f"Only image files are allowed ({allowed})"}), 400

    # Generate unique ID for this upload
    file_id = str(uuid.uuid4())
    filename = secure_filename(file.filename)
    file_path = upload_folder() / f"{file_id}_{filename}"

    file.save(file_path)

    analyzer = ImageAnalyzer(file_path)
    analysis = analyzer.analyze()

    if analysis.error:
        file_path.unlink()
        return jsonify({"error": analysis.error}), 400

    return jsonify({
        "file_id": file_id,
        "filename": filename,
        "analysis": {
            "current_size": analysis.file_size,
            "current_size_formatted": format_size(analysis.file_size),
            "width": analysis.width,
            "height": analysis.height,
            "format": analysis.format,
            "mode": analysis.mode,
            "has_alpha": analysis.has_alpha,
        }
    })


@app.route("/api/compress", methods=["POST"])
def start_compression():
    """Start compression job."""
    data = request.get_json(silent=True)

    if not data:
        return jsonify({"error": "No data provided"}), 400

    file_id = data.get("file_id")
    filename = data.get("filename")
    target_size_str = data.get("target_size")
    format_name = data.get("format")
    precision = data.get("precision", "balanced")

    if not all([file_id, filename, target_size_str]):
        return jsonify({"error": "Missing required fields"}), 400

    # Find the uploaded file
    filename = secure_filename(filename)
    file_path = upload_folder() / f"{secure_filename(file_id)}_{filename}"
    if not file_path.exists():
        return jsonify({"error": "File not found. Please upload again."}), 404

    try:
        target_bytes = parse_size(str(target_size_str))
        fmt = ImageFormat.parse(format_name) if format_name else ImageFormat.from_path(filename)
        get_search_config(precision)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    # Create job
    job_id = str(uuid.uuid4())

    with jobs_lock:
        jobs[job_id] = {
            "status": "starting",
            "stage": "Initializing",
            "progress": 0,
            "file_id": file_id,
            "filename": filename,
            "format": fmt.value,
            "target_size": target_bytes,
            "result": None,
            "error": None,
            "output_file": None,
        }

    # Start compression in background thread
    thread = threading.Thread(
        target=run_compression_job,
        args=(job_id, file_path, target_bytes, fmt, precision),
        daemon=True,
    )
    thread.start()

    return jsonify({"job_id": job_id})


def run_compression_job(
    job_id: str,
    file_path: Path,
    target_bytes: int,
    fmt: ImageFormat,
    precision: str,
):
    """Run compression job in background."""
    def progress_callback(stage: str, percentage: int):
        with jobs_lock:
            if job_id in jobs:
                jobs[job_id]["stage"] = stage
                jobs[job_id]["progress"] = percentage
                jobs[job_id]["status"] = "processing"

    try:
        stem = Path(jobs[job_id]["filename"]).stem
        output_path = output_folder() / f"{job_id}_{stem}_compressed{fmt.extension}"

        result = compress_file(
            file_path,
            output_path,
            target_bytes,
            fmt=fmt,
            config=get_search_config(precision),
            progress_callback=progress_callback,
        )

        if not result.target_achieved:
            app.logger.warning(
                "Job %s: target %s not reached, best is %s",
                job_id, format_size(target_bytes), format_size(result.size),
            )

        with jobs_lock:
            jobs[job_id]["status"] = "completed"
            jobs[job_id]["stage"] = "Complete"
            jobs[job_id]["progress"] = 100
            jobs[job_id]["result"] = result.to_dict()
            jobs[job_id]["output_file"] = str(output_path)

    except Exception as e:
        app.logger.exception("Job %s failed", job_id)
        with jobs_lock:
            jobs[job_id]["status"] = "failed"
            jobs[job_id]["stage"] = "Error"
            jobs[job_id]["error"] = str(e)


@app.route("/api/job/<job_id>")
def get_job_status(job_id: str):
    """Get job status and progress."""
    with jobs_lock:
        if job_id not in jobs:
            return jsonify({"error": "Job not found"}), 404

        job = jobs[job_id].copy()

    job.pop("output_file", None)
    return jsonify(job)


@app.route("/api/download/<job_id>")
def download_file(job_id: str):
    """Download the compressed image."""
    with jobs_lock:
        if job_id not in jobs:
            return jsonify({"error": "Job not found"}), 404

        job = jobs[job_id]

        if job["status"] != "completed":
            return jsonify({"error": "Job not completed"}), 400

        file_path = Path(job["output_file"])
        fmt = ImageFormat.parse(job["format"])
        original_name = Path(job["filename"]).stem

    if not file_path.exists():
        return jsonify({"error": "File no longer available"}), 404

    return send_file(
        file_path,
        mimetype=fmt.mime_type,
        as_attachment=True,
        download_name=f"{original_name}_compressed{fmt.extension}",
    )


@app.route("/api/report/<job_id>")
def get_report(job_id: str):
    """Get compression report as JSON."""
    with jobs_lock:
        if job_id not in jobs:
            return jsonify({"error": "Job not found"}), 404

        job = jobs[job_id]

        if job["status"] != "completed":
            return jsonify({"error": "Job not completed"}), 400

        report = dict(job["result"])

    report.pop("input_path", None)
    report.pop("output_path", None)
    return jsonify(report)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Starting Smart Image Compressor Web Server...")
    print("Open http://localhost:5000 in your browser")
    app.run(debug=True, host="0.0.0.0", port=5000)
