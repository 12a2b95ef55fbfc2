"""File-backed metadata index for uploaded files."""

import json
import os
import tempfile
import threading
import time


def file_metadata(filename, size):
    """Metadata recorded for every stored upload"""
    return {
        'TimeStamp': int(time.time() * 1000),
        'ListType': 'None',
        'Label': 'None',
        'liked': False,
        'fileName': filename,
        'fileSize': size,
    }


class JsonMetadataStore:
    """Keeps ``key -> metadata`` in a single JSON document on disk"""

    def __init__(self, path):
        self.path = path
        self._lock = threading.Lock()

    def _load(self):
        if not os.path.exists(self.path):
            return {}
        with open(self.path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def get(self, key):
        return self._load().get(key)

    def keys(self):
        return list(self._load())

    def put(self, key, metadata):
        with self._lock:
            entries = self._load()
            entries[key] = metadata

            directory = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(directory, exist_ok=True)

            # Write to a sibling temp file, then swap it in
            fd, temp_path = tempfile.mkstemp(dir=directory, suffix='.json')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(entries, f)
                os.replace(temp_path, self.path)
            except Exception:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise
