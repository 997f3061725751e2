import logging
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)


def load_blocklist(path: str) -> List[str]:
    """Read one blocked substring per line; blank lines and ``#`` comments are skipped."""
    words = []
    with open(path, encoding='utf-8') as fh:
        for raw in fh:
            word = raw.split('#', 1)[0].strip().lower()
            if word:
                words.append(word)
    logger.info(f"[blocklist] loaded {len(words)} entries from {path}")
    return words


class Blocklist:
    def __init__(self, words: Iterable[str] = ()):
        self.words = [w.lower() for w in words if w]

    def match(self, text: str) -> Optional[str]:
        """Return the first blocked substring contained in ``text``, if any."""
        lowered = text.lower()
        for word in self.words:
            if word in lowered:
                return word
        return None
