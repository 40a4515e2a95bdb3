"""Subtitle parsers and writers for JSON, ASS/SSA, SRT and VTT.

Every supported syntax is parsed into a :class:`SubtitleDocument` (whole
milliseconds, line breaks kept as ``\\n``) and can be serialized back from it.
ASS output always uses the fixed presentation profile defined here.
"""

from __future__ import annotations

import io
import json
import logging
import math
from datetime import timedelta
from pathlib import Path
from typing import Callable, Dict, List, Optional

import chardet  # type: ignore
import pysubs2
import srt
import webvtt
from webvtt.errors import MalformedFileError

from ..errors import SubtitleCodecError
from ..util.types import Cue, SubtitleDocument, SubtitleFormat


log = logging.getLogger(__name__)

ASS_STYLE_NAME = "Default"

# Presentation profile applied to every converted subtitle
ASS_SCRIPT_INFO: Dict[str, str] = {
	"Title": "seasonmux subtitle",
	"WrapStyle": "0",
	"ScaledBorderAndShadow": "yes",
	"YCbCr Matrix": "TV.601",
	"PlayResX": "1920",
	"PlayResY": "1080",
}


def default_ass_style() -> pysubs2.SSAStyle:
	"""Return the pipeline-wide ASS style (Noto Sans 100, white on dark outline, bottom centre)."""
	return pysubs2.SSAStyle(
		fontname="Noto Sans",
		fontsize=100.0,
		primarycolor=pysubs2.Color(255, 255, 255, 0),
		secondarycolor=pysubs2.Color(0, 255, 255, 0),
		outlinecolor=pysubs2.Color(8, 34, 0, 0),
		backcolor=pysubs2.Color(0, 0, 0, 127),
		bold=False,
		italic=False,
		borderstyle=1,
		outline=5.0,
		shadow=1.5,
		alignment=pysubs2.Alignment.BOTTOM_CENTER,
		marginl=96,
		marginr=96,
		marginv=65,
		encoding=1,
	)


def _decode(data: bytes) -> str:
	"""Decode subtitle bytes, stripping a BOM and guessing non-UTF-8 encodings."""
	try:
		return data.decode("utf-8-sig")
	except UnicodeDecodeError:
		pass
	detected = chardet.detect(data)
	encoding = detected.get("encoding") or "utf-8"
	try:
		text = data.decode(encoding)
	except (UnicodeDecodeError, LookupError):
		log.warning("Failed to decode subtitle as %s, falling back to UTF-8 with replacement", encoding)
		return data.decode("utf-8", errors="replace")
	if text.startswith("\ufeff"):
		text = text[1:]
	return text


def _seconds_to_ms(value: float) -> int:
	return int(round(value * 1000))


def _timedelta_to_ms(value: timedelta) -> int:
	return int(round(value / timedelta(milliseconds=1)))


def _normalize_newlines(text: str) -> str:
	return text.replace("\r\n", "\n").replace("\r", "\n")


# Braces open ASS override blocks; literal ones are kept as full-width lookalikes
_ASS_BRACES = str.maketrans({"{": "\uff5b", "}": "\uff5d"})


def _escape_ass_text(text: str) -> str:
	return _normalize_newlines(text).translate(_ASS_BRACES).replace("\n", r"\N")


def parse_json_bytes(data: bytes, source_file: Optional[str] = None) -> SubtitleDocument:
	"""Parse a JSON subtitle (``{"body": [{"from", "to", "content"}, ...]}``).

	``from``/``to`` are fractional seconds and are rounded to the nearest
	millisecond.
	"""
	try:
		payload = json.loads(_decode(data))
	except json.JSONDecodeError as exc:
		raise SubtitleCodecError(f"Invalid JSON subtitle {source_file or ''}: {exc}") from exc

	body = payload.get("body") if isinstance(payload, dict) else None
	if not isinstance(body, list):
		raise SubtitleCodecError(f"JSON subtitle {source_file or ''} has no 'body' list")

	cues: List[Cue] = []
	for i, item in enumerate(body):
		if not isinstance(item, dict):
			raise SubtitleCodecError(f"JSON subtitle line {i} is not an object")
		start, end, content = item.get("from"), item.get("to"), item.get("content")
		if isinstance(start, bool) or not isinstance(start, (int, float)) or not math.isfinite(start):
			raise SubtitleCodecError(f"JSON subtitle line {i} has no finite numeric 'from'")
		if isinstance(end, bool) or not isinstance(end, (int, float)) or not math.isfinite(end):
			raise SubtitleCodecError(f"JSON subtitle line {i} has no finite numeric 'to'")
		if not isinstance(content, str):
			raise SubtitleCodecError(f"JSON subtitle line {i} has no text 'content'")
		cues.append(Cue(_seconds_to_ms(start), _seconds_to_ms(end), _normalize_newlines(content)))
	return SubtitleDocument(cues=cues, source_file=source_file)


def parse_srt_bytes(data: bytes, source_file: Optional[str] = None) -> SubtitleDocument:
	"""Parse SRT bytes into a subtitle document."""
	text_content = _decode(data)
	cues: List[Cue] = []
	try:
		for item in srt.parse(text_content):
			cues.append(
				Cue(
					_timedelta_to_ms(item.start),
					_timedelta_to_ms(item.end),
					_normalize_newlines(item.content or "").strip("\n"),
				)
			)
	except srt.SRTParseError:
		# Handle malformed SRT files by parsing manually
		log.warning("Strict SRT parse failed for %s, retrying leniently", source_file or "<bytes>")
		cues = _parse_srt_manually(text_content)
	return SubtitleDocument(cues=cues, source_file=source_file)


def _parse_srt_manually(content: str) -> List[Cue]:
	"""Manually parse SRT content when the standard parser fails."""
	cues: List[Cue] = []
	lines = _normalize_newlines(content).split("\n")
	i = 0

	while i < len(lines):
		line = lines[i].strip()

		if not line.isdigit():
			i += 1
			continue

		i += 1
		if i >= len(lines):
			break

		# Next line should be the timestamp
		timestamp_line = lines[i].strip()
		if "-->" not in timestamp_line:
			continue
		start_str, _, end_str = timestamp_line.partition("-->")
		start_ms = _parse_timestamp(start_str.strip())
		end_ms = _parse_timestamp(end_str.strip().split(" ")[0])

		i += 1
		text_lines = []
		while i < len(lines) and lines[i].strip():
			text_lines.append(lines[i].strip())
			i += 1

		if start_ms is None or end_ms is None or not text_lines:
			continue
		cues.append(Cue(start_ms, end_ms, "\n".join(text_lines)))

	return cues


def _parse_timestamp(timestamp_str: str) -> Optional[int]:
	"""Parse an ``HH:MM:SS,mmm`` (or ``.mmm``) timestamp into milliseconds."""
	if timestamp_str.startswith("-"):
		return None
	time_part, sep, frac = timestamp_str.replace(".", ",").partition(",")
	parts = time_part.split(":")
	if len(parts) == 2:
		parts.insert(0, "0")
	if len(parts) != 3:
		return None
	try:
		hours, minutes, seconds = map(int, parts)
		ms = int(round(float(f"0.{frac}") * 1000)) if sep and frac else 0
	except ValueError:
		return None
	return ((hours * 60 + minutes) * 60 + seconds) * 1000 + ms


def parse_vtt_bytes(data: bytes, source_file: Optional[str] = None) -> SubtitleDocument:
	"""Parse WebVTT bytes into a subtitle document."""
	text_content = _decode(data)
	try:
		vtt = webvtt.read_buffer(io.StringIO(text_content))
	except (MalformedFileError, ValueError) as exc:
		raise SubtitleCodecError(f"Invalid WebVTT subtitle {source_file or ''}: {exc}") from exc

	cues: List[Cue] = []
	for caption in vtt:
		start = _parse_timestamp(caption.start)
		end = _parse_timestamp(caption.end)
		if start is None or end is None:
			raise SubtitleCodecError(f"Invalid WebVTT timestamp {caption.start} --> {caption.end}")
		cues.append(Cue(start, end, _normalize_newlines(caption.text or "")))
	return SubtitleDocument(cues=cues, source_file=source_file)


def parse_ass_bytes(data: bytes, source_file: Optional[str] = None) -> SubtitleDocument:
	"""Parse ASS/SSA bytes into a subtitle document, dropping override tags and comments."""
	text_content = _decode(data)
	try:
		subs = pysubs2.SSAFile.from_string(text_content, format_="ass")
	except (pysubs2.exceptions.Pysubs2Error, ValueError) as exc:
		raise SubtitleCodecError(f"Invalid ASS subtitle {source_file or ''}: {exc}") from exc

	cues = [Cue(line.start, line.end, line.plaintext) for line in subs if not line.is_comment]
	return SubtitleDocument(cues=cues, source_file=source_file)


PARSERS: Dict[SubtitleFormat, Callable[..., SubtitleDocument]] = {
	SubtitleFormat.JSON: parse_json_bytes,
	SubtitleFormat.ASS: parse_ass_bytes,
	SubtitleFormat.SRT: parse_srt_bytes,
	SubtitleFormat.VTT: parse_vtt_bytes,
}


def parse_subtitle_bytes(data: bytes, fmt: SubtitleFormat, source_file: Optional[str] = None) -> SubtitleDocument:
	"""Parse ``data`` with the parser registered for ``fmt``."""
	return PARSERS[fmt](data, source_file=source_file)


def parse_subtitle_file(path: Path, fmt: Optional[SubtitleFormat] = None) -> SubtitleDocument:
	"""Read a subtitle file; the format is taken from its extension unless given."""
	fmt = fmt or SubtitleFormat.from_extension(path.suffix)
	if fmt is None:
		raise SubtitleCodecError(f"Cannot tell the subtitle format of {path}")
	return parse_subtitle_bytes(path.read_bytes(), fmt, source_file=str(path))


def to_ass_file(doc: SubtitleDocument) -> pysubs2.SSAFile:
	"""Build an ASS file carrying the fixed presentation profile."""
	subs = pysubs2.SSAFile()
	subs.info.update(ASS_SCRIPT_INFO)
	subs.styles = {ASS_STYLE_NAME: default_ass_style()}
	for cue in doc.cues:
		subs.append(
			pysubs2.SSAEvent(
				start=cue.start_ms,
				end=cue.end_ms,
				text=_escape_ass_text(cue.text),
				style=ASS_STYLE_NAME,
			)
		)
	return subs


def to_ass_string(doc: SubtitleDocument) -> str:
	return to_ass_file(doc).to_string("ass")


def to_srt_string(doc: SubtitleDocument) -> str:
	items = [
		srt.Subtitle(
			index=i,
			start=timedelta(milliseconds=cue.start_ms),
			end=timedelta(milliseconds=cue.end_ms),
			content=cue.text,
		)
		for i, cue in enumerate(doc.cues, start=1)
	]
	return srt.compose(items, reindex=False)


def _ms_to_vtt_timestamp(ms: int) -> str:
	hours, rest = divmod(ms, 3_600_000)
	minutes, rest = divmod(rest, 60_000)
	seconds, millis = divmod(rest, 1000)
	return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


def to_vtt_string(doc: SubtitleDocument) -> str:
	vtt = webvtt.WebVTT()
	for cue in doc.cues:
		vtt.captions.append(
			webvtt.Caption(
				_ms_to_vtt_timestamp(cue.start_ms),
				_ms_to_vtt_timestamp(cue.end_ms),
				cue.text,
			)
		)
	buf = io.StringIO()
	vtt.write(buf)
	return buf.getvalue()


WRITERS: Dict[SubtitleFormat, Callable[[SubtitleDocument], str]] = {
	SubtitleFormat.ASS: to_ass_string,
	SubtitleFormat.SRT: to_srt_string,
	SubtitleFormat.VTT: to_vtt_string,
}


def write_subtitle(doc: SubtitleDocument, path: Path, fmt: SubtitleFormat = SubtitleFormat.ASS) -> Path:
	"""Serialize ``doc`` as ``fmt`` to ``path`` (UTF-8). JSON is input-only."""
	writer = WRITERS.get(fmt)
	if writer is None:
		raise SubtitleCodecError(f"Writing {fmt.value} subtitles is not supported")
	try:
		path.write_text(writer(doc), encoding="utf-8")
	except OSError as exc:
		raise SubtitleCodecError(f"Failed to write subtitle {path}: {exc}") from exc
	return path
