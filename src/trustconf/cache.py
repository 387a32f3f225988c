import logging
from typing import Any
from typing import Callable
from typing import Optional

from idpyoidc.impexp import ImpExp

logger = logging.getLogger(__name__)

_MISSING = object()


class RunCache(ImpExp):
    """
    Read-through cache that lives exactly as long as one configuration run.
    A loader is only called the first time a key is asked for, after that the
    same value (also None) is returned for the rest of the run.
    """
    parameter = {
        "_db": {},
        "hits": 0,
        "misses": 0
    }

    def __init__(self):
        ImpExp.__init__(self)
        self._db = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str, loader: Optional[Callable] = None, *args) -> Any:
        _val = self._db.get(key, _MISSING)
        if _val is not _MISSING:
            self.hits += 1
            return _val

        self.misses += 1
        if loader is None:
            return None

        _val = loader(*args)
        self._db[key] = _val
        logger.debug(f"Cached '{key}'")
        return _val

    def __setitem__(self, key, value):
        self._db[key] = value

    def __getitem__(self, item):
        return self._db[item]

    def __contains__(self, item):
        return item in self._db

    def __len__(self):
        return len(self._db)

    def keys(self):
        return self._db.keys()

    def clear(self):
        self._db = {}
