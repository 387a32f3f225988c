import copy
import json
import logging
import os
from typing import Dict
from typing import List
from typing import Optional
from typing import Type

from idpyoidc.exception import MessageException
from idpyoidc.message import Message

from trustconf.exception import PersistenceError
from trustconf.message import MESSAGE_TYPES

logger = logging.getLogger(__name__)


def dn_in_base(dn: str, base_dn: str) -> bool:
    _dn = dn.lower().replace(" ", "")
    _base = base_dn.lower().replace(" ", "")
    return _dn != _base and _dn.endswith("," + _base)


def match_filter(record: dict, filter: Optional[dict] = None) -> bool:
    if not filter:
        return True

    for attr, val in filter.items():
        _val = record.get(attr)
        if isinstance(_val, list):
            if val not in _val:
                return False
        elif _val != val:
            return False
    return True


class DirectoryStore(object):
    """
    The directory the records live in. Entries are keyed by DN and typed by the
    Message class they are stored as.
    """

    def find(self, dn: str, cls: Type[Message]) -> Optional[Message]:
        raise NotImplementedError()

    def merge(self, entity: Message):
        raise NotImplementedError()

    def find_entries(self, base_dn: str, cls: Type[Message],
                     filter: Optional[dict] = None) -> List[Message]:
        raise NotImplementedError()

    def contains(self, dn: str, cls: Type[Message]) -> bool:
        return self.find(dn, cls) is not None


class MemoryStore(DirectoryStore):

    def __init__(self, entries: Optional[Dict[str, dict]] = None, **kwargs):
        self._db = {}
        if entries:
            for dn, info in entries.items():
                self._db[dn] = copy.deepcopy(info)

    def _record(self, dn, cls):
        _info = self._db.get(dn)
        if _info is None or _info.get("_type") != cls.__name__:
            return None
        return {k: v for k, v in _info.items() if k != "_type"}

    def _instance(self, dn, cls):
        _info = self._record(dn, cls)
        if _info is None:
            return None
        _info["dn"] = dn
        try:
            return cls(**_info)
        except (MessageException, ValueError, TypeError) as err:
            raise PersistenceError(f"Malformed {cls.__name__} entry {dn}: {err}")

    def find(self, dn, cls):
        return self._instance(dn, cls)

    def merge(self, entity):
        dn = entity.get("dn")
        if not dn:
            raise PersistenceError(f"Can not store a {entity.__class__.__name__} without a DN")

        _info = entity.to_dict()
        _info["_type"] = entity.__class__.__name__
        self._db[dn] = _info
        self.flush()

    def find_entries(self, base_dn, cls, filter=None):
        res = []
        for dn in list(self._db.keys()):
            if not dn_in_base(dn, base_dn):
                continue
            _info = self._record(dn, cls)
            if _info is None or not match_filter(_info, filter):
                continue
            res.append(self._instance(dn, cls))
        return res

    def flush(self):
        pass

    def dump(self) -> dict:
        return copy.deepcopy(self._db)


class JsonFileStore(MemoryStore):
    """
    Directory kept in a JSON file. The file holds a dictionary with DNs as keys and
    record dictionaries as values. Each record has a '_type' item naming the class it
    is stored as.
    """

    def __init__(self, filename: str, **kwargs):
        self.filename = filename
        MemoryStore.__init__(self, entries=self._read())

    def _read(self):
        if not os.path.isfile(self.filename):
            return {}

        try:
            with open(self.filename, "r") as fp:
                _db = json.load(fp)
        except (OSError, ValueError) as err:
            raise PersistenceError(f"Could not read {self.filename}: {err}")

        for dn, info in _db.items():
            if info.get("_type") not in MESSAGE_TYPES:
                raise PersistenceError(f"Unknown type of entry {dn}: {info.get('_type')}")
        return _db

    def flush(self):
        _tmp = f"{self.filename}.tmp"
        try:
            with open(_tmp, "w") as fp:
                json.dump(self._db, fp, indent=2, sort_keys=True)
            os.replace(_tmp, self.filename)
        except OSError as err:
            raise PersistenceError(f"Could not write {self.filename}: {err}")
        logger.debug(f"Wrote {len(self._db)} entries to {self.filename}")
