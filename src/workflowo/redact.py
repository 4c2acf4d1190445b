from __future__ import annotations

from typing import Iterable

from . import settings


class Redactor:
    """
    Scrubs secret literals out of rendered text.

    This is a plain substring replacement over the finished rendering, so any
    other value that happens to equal a secret is scrubbed as well.
    """

    def __init__(self, secrets: Iterable[str], marker: str = settings.REDACTION_MARKER):
        # empty secrets would match between every character
        self.secrets = [s for s in secrets if s]
        self.marker = marker

    def scrub(self, text: str) -> str:
        for secret in self.secrets:
            text = text.replace(secret, self.marker)
        return text
