"""
Markdown bodies written into notes by the upload and transcription handlers.

The transcript heading and the issues marker are also how clients tell a
clean transcription apart from a completed-with-issues one, so both live
here as constants.
"""

from __future__ import annotations

from datetime import datetime

VOICE_TITLE_PREFIX = "🎙️ Voice Note - "
SCREENSHOT_TITLE_PREFIX = "📸 Screenshot - "

TRANSCRIPT_HEADING = "## 📝 Transcription"
ISSUES_MARKER = "⚠️ Completed with Issues"


def voice_title(now: datetime) -> str:
    return f"{VOICE_TITLE_PREFIX}{now:%Y-%m-%d}"


def screenshot_title(now: datetime) -> str:
    return f"{SCREENSHOT_TITLE_PREFIX}{now:%Y-%m-%d}"


def _source_name(title: str) -> str:
    return title.removeprefix(VOICE_TITLE_PREFIX)


def voice_unavailable(filename: str, size_bytes: int) -> str:
    return (
        "# 🎙️ Voice Recording Uploaded\n\n"
        f"**File:** {filename}\n"
        f"**Size:** {round(size_bytes / 1024)} KB\n\n"
        "*Automatic transcription is not configured on this server.*\n\n"
        "---\n\n"
        "**What you can do now:**\n"
        "- Edit this note to add a manual transcription\n"
        "- Add tags to organize your voice notes"
    )


def voice_processing(filename: str, job_id: str) -> str:
    return (
        "# 🎙️ Voice Recording - Processing\n\n"
        f"**File:** {filename}\n"
        f"**Transcription Job:** {job_id}\n"
        "**Status:** ⏳ Transcribing...\n\n"
        "*Your recording is being transcribed. This note updates automatically "
        "when the transcript is ready.*"
    )


def voice_start_failed(filename: str, error: str) -> str:
    return (
        "# 🎙️ Voice Recording - Transcription Failed\n\n"
        f"**File:** {filename}\n"
        "**Status:** ❌ Failed to start\n\n"
        f"**Error:** {error}\n\n"
        "---\n\n"
        "*Try uploading the recording again, or click Edit to add a manual transcription.*"
    )


def transcript_success(title: str, job_id: str, transcript: str, confidence: float | None) -> str:
    score = f" ({round(confidence * 100)}% confidence)" if confidence is not None else ""
    return (
        "# 🎙️ Voice Recording - Transcribed\n\n"
        f"**File:** {_source_name(title)}\n"
        f"**Transcription Job:** {job_id}\n"
        f"**Status:** ✅ Completed{score}\n\n"
        f"{TRANSCRIPT_HEADING}\n\n"
        f"{transcript}\n\n"
        "---\n\n"
        "*Transcribed automatically. You can edit this content to make corrections.*"
    )


def transcript_empty(title: str, job_id: str) -> str:
    return (
        "# 🎙️ Voice Recording - Transcription Complete\n\n"
        f"**File:** {_source_name(title)}\n"
        f"**Transcription Job:** {job_id}\n"
        f"**Status:** {ISSUES_MARKER}\n\n"
        "## ⚠️ Transcription Result\n\n"
        "The job completed, but no transcript content was received. The audio "
        "may contain no speech or be too unclear to transcribe.\n\n"
        "---\n\n"
        "**Manual Transcription Area:**\n\n"
        "*Click Edit to add your transcription here...*"
    )


def transcript_failed(title: str, job_id: str, error: str) -> str:
    return (
        "# 🎙️ Voice Recording - Transcription Failed\n\n"
        f"**File:** {_source_name(title)}\n"
        f"**Transcription Job:** {job_id}\n"
        "**Status:** ❌ Failed\n\n"
        "## ⚠️ Transcription Error\n\n"
        f"**Error:** {error}\n\n"
        "---\n\n"
        "**Supported formats:** MP3, WAV, M4A, AAC, OGG, FLAC, WEBM"
    )


def screenshot_text(filename: str, text: str) -> str:
    return (
        "# Screenshot Text Extraction\n\n"
        f"**File:** {filename}\n\n"
        "## Extracted Text:\n\n"
        f"{text}\n\n"
        "---\n\n"
        "*Text extracted using OCR. Some formatting may be lost.*"
    )


def screenshot_no_text(filename: str) -> str:
    return (
        "# Screenshot Processed\n\n"
        f"**File:** {filename}\n\n"
        "*No text was detected in this image.*\n\n"
        "You can still add a manual description or tags to this note."
    )


def screenshot_ocr_failed(filename: str) -> str:
    return (
        "# Screenshot Upload\n\n"
        f"**File:** {filename}\n\n"
        "*OCR processing failed, but the note has been created.*\n\n"
        "Click Edit to add the text content manually."
    )
