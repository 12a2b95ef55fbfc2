import io
import logging
import re
from typing import Dict, List, NamedTuple, Optional, Tuple

from werkzeug.datastructures import FileStorage, MultiDict

logger = logging.getLogger(__name__)

CRLF = b'\r\n'
HEADER_END = b'\r\n\r\n'
DEFAULT_FILE_TYPE = 'application/octet-stream'


class FormatError(ValueError):
    """Raised when the Content-Type header cannot describe a multipart body"""


class Part(NamedTuple):
    """One field or file of a multipart body"""
    name: str
    filename: Optional[str]
    content_type: Optional[str]
    data: bytes

    @property
    def is_file(self) -> bool:
        return self.filename is not None


def find_sequence(data: bytes, sequence: bytes, start: int = 0) -> int:
    """Return the index of the first ``sequence`` in ``data`` at or after ``start``, or -1"""
    return data.find(sequence, start)


def parse_boundary(content_type: str) -> Optional[str]:
    """Extract boundary from content type header"""
    match = re.search(r'boundary=([^;]+)', content_type, re.IGNORECASE)
    if not match:
        return None
    boundary = match.group(1).strip()
    return re.sub(r'^["\']|["\']$', '', boundary)


def parse_headers(header_text: str) -> Dict[str, str]:
    """Split a part's header block into a lower-cased name -> value map"""
    headers = {}
    for line in re.split(r'\r?\n', header_text):
        colon = line.find(':')
        if colon > 0:
            key = line[:colon].strip().lower()
            headers[key] = line[colon + 1:].strip()
    return headers


def parse_part(block: bytes) -> Optional[Part]:
    """Turn one raw part block into a Part, or None if it is malformed"""
    header_end = find_sequence(block, HEADER_END)
    if header_end == -1:
        logger.debug('Dropping part without header separator')
        return None

    headers = parse_headers(block[:header_end].decode('utf-8', errors='replace'))
    body = block[header_end + 4:]

    # Remove trailing CRLF
    if body.endswith(CRLF):
        body = body[:-2]

    disposition = headers.get('content-disposition')
    if not disposition:
        logger.debug('Dropping part without Content-Disposition')
        return None

    name_match = re.search(r'\bname="([^"]+)"', disposition)
    if not name_match:
        logger.debug('Dropping part without a field name: %s', disposition)
        return None

    filename_match = re.search(r'\bfilename="([^"]+)"', disposition)
    filename = filename_match.group(1) if filename_match else None

    content_type = headers.get('content-type')
    if filename is not None and not content_type:
        content_type = DEFAULT_FILE_TYPE

    return Part(name_match.group(1), filename, content_type, body)


class MultipartParser:
    """Multipart form data parser used when the platform form decoder gives up"""

    def __init__(self, body: bytes, content_type: str):
        self.body = body
        self.content_type = content_type or ''

    def parse(self) -> List[Part]:
        """Parse multipart form data into an ordered list of parts"""
        if 'multipart/form-data' not in self.content_type:
            raise FormatError('Content-Type must be multipart/form-data')

        boundary = parse_boundary(self.content_type)
        if not boundary:
            raise FormatError('No boundary found in Content-Type')

        return [part for part in self._iter_parts(boundary.encode('utf-8')) if part is not None]

    def _iter_parts(self, boundary: bytes):
        body = self.body
        marker = b'--' + boundary

        position = find_sequence(body, marker)
        if position == -1:
            return
        position += len(marker)

        while position < len(body):
            # CRLF between the boundary and the headers is optional
            if body[position:position + 2] == CRLF:
                position += 2

            next_boundary = find_sequence(body, marker, position)
            if next_boundary == -1:
                break

            yield parse_part(body[position:next_boundary])

            position = next_boundary + len(marker)

            # Closing boundary
            if body[position:position + 2] == b'--':
                break


def parse_multipart_form(body: bytes, content_type: str) -> List[Part]:
    """Convenience function to parse multipart form data"""
    parser = MultipartParser(body, content_type)
    return parser.parse()


def to_multidict(parts: List[Part]) -> Tuple[MultiDict, MultiDict]:
    """Fold parsed parts into the ``(form, files)`` pair Flask exposes on a request"""
    form = MultiDict()
    files = MultiDict()

    for part in parts:
        if part.is_file:
            files.add(part.name, FileStorage(
                stream=io.BytesIO(part.data),
                filename=part.filename,
                name=part.name,
                content_type=part.content_type,
                content_length=len(part.data),
            ))
        else:
            form.add(part.name, part.data.decode('utf-8', errors='replace'))

    return form, files
