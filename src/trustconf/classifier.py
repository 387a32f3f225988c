"""
Sorts trust relationships into those with their own metadata and those that are
carved out of a federation metadata aggregate.
"""
import logging
import os
from typing import Dict
from typing import List
from typing import Optional

from idpyoidc.exception import MessageException
from idpyoidc.impexp import ImpExp

from trustconf.defaults import IDP_CREDENTIALS_FOLDER
from trustconf.defaults import SIGNATURE_VALIDATION_TYPE
from trustconf.defaults import STANDALONE_SOURCE_TYPES
from trustconf.defaults import STATUS_INACTIVE
from trustconf.exception import PersistenceError
from trustconf.filter import NormalizedRelationship
from trustconf.filter import filter_name
from trustconf.filter import normalize_relationship
from trustconf.message import TrustRelationship
from trustconf.metadata import entity_ids_from_file
from trustconf.outcome import Ok
from trustconf.outcome import Skipped
from trustconf.service import TrustService
from trustconf.utils import sanitize_inum

logger = logging.getLogger(__name__)


def is_standalone(trust_relationship: TrustRelationship) -> bool:
    return trust_relationship["sp_metadata_source_type"] in STANDALONE_SOURCE_TYPES


class Classification(ImpExp):
    parameter = {
        "trust_ids": {},
        "deconstructed_ids": {},
        "trust_entity_ids": {},
        "deconstructed": [],
        "federation_members": {},
        "trusts": [],
        "trust_engines": [],
        "normalized": {},
        "inactivated": [],
        "outcomes": []
    }

    def __init__(self):
        ImpExp.__init__(self)
        # inum -> numeric id
        self.trust_ids = {}
        # entity id -> numeric id
        self.deconstructed_ids = {}
        # inum -> entity ids
        self.trust_entity_ids = {}
        self.deconstructed = []
        # federation inum -> member entity ids
        self.federation_members = {}
        self.trusts = []
        self.trust_engines = []
        self.normalized = {}
        self.inactivated = []
        self.outcomes = []


class TrustClassifier(object):
    """
    :param metadata_dir: Where the metadata files of standalone relationships are
    :param trust_service: Used to persist status changes. If not given status changes
        are only done on the instances passed in.
    """

    def __init__(self, metadata_dir: str, trust_service: Optional[TrustService] = None):
        self.metadata_dir = metadata_dir
        self.trust_service = trust_service

    def credentials_path(self) -> str:
        return os.path.join(self.metadata_dir, IDP_CREDENTIALS_FOLDER)

    def trust_engine(self, normalized: NormalizedRelationship) -> Optional[Dict[str, str]]:
        _filter = normalized.filter(filter_name(SIGNATURE_VALIDATION_TYPE))
        if _filter is None:
            return None

        _cert_file = _filter.attributes.get("certificateFile")
        if not _cert_file:
            logger.warning(
                f"Signature validation filter of {normalized.inum} without certificate file")
            return None

        return {
            "id": "Trust" + sanitize_inum(normalized.inum),
            "cert_path": os.path.join(self.credentials_path(), os.path.basename(_cert_file))
        }

    def _inactivate(self, trust_relationship: TrustRelationship, classification: Classification):
        trust_relationship["status"] = STATUS_INACTIVE
        classification.inactivated.append(trust_relationship["inum"])
        if self.trust_service is None:
            return

        try:
            self.trust_service.update_trust_relationship(trust_relationship)
        except PersistenceError as err:
            logger.error(
                f"Failed to store status of trust relationship {trust_relationship['inum']}: {err}")

    def _metadata_entity_ids(self, trust_relationship: TrustRelationship) -> Optional[List[str]]:
        _fn = trust_relationship.get("sp_metadata_fn")
        if not _fn:
            return None
        return entity_ids_from_file(os.path.join(self.metadata_dir, _fn))

    def classify(self, trust_relationships: List[TrustRelationship]) -> Classification:
        """
        Numeric IDs are handed out in the order the relationships are given, one
        sequence for standalone relationships and another for those that are part of
        a federation.
        """
        res = Classification()
        _standalone_id = 1
        _federation_id = 1

        for tr in trust_relationships:
            inum = tr.get("inum", "")
            try:
                tr.verify()
            except (MessageException, ValueError) as err:
                res.outcomes.append(Skipped(item=inum, reason=f"Invalid trust relationship: {err}"))
                continue

            if is_standalone(tr):
                entity_ids = self._metadata_entity_ids(tr)
                if entity_ids is None:
                    self._inactivate(tr, res)
                    res.outcomes.append(
                        Skipped(item=inum, reason="Metadata missing or corrupt, marked inactive"))
                    continue

                res.trust_ids[inum] = _standalone_id
                _standalone_id += 1
                res.trust_entity_ids[inum] = entity_ids

                _normalized = normalize_relationship(tr)
                res.normalized[inum] = _normalized
                res.trusts.append(tr)

                _engine = self.trust_engine(_normalized)
                if _engine:
                    res.trust_engines.append(_engine)
            else:
                entity_id = tr.get("entity_id")
                if not entity_id:
                    res.outcomes.append(
                        Skipped(item=inum, reason="Federation member without entity ID"))
                    continue

                res.normalized[inum] = normalize_relationship(tr)

                _federation = tr.get("container_federation")
                if _federation:
                    res.federation_members.setdefault(_federation, []).append(entity_id)
                res.deconstructed.append(tr)
                res.deconstructed_ids[entity_id] = _federation_id
                _federation_id += 1

            logger.debug(f"Classified trust relationship {inum}")
            res.outcomes.append(Ok(item=inum))

        for inum, entity_ids in res.trust_entity_ids.items():
            _members = res.federation_members.get(inum)
            if _members:
                res.trust_entity_ids[inum] = [e for e in entity_ids if e not in _members]

        return res


def classify(trust_relationships: List[TrustRelationship], metadata_dir: str,
             trust_service: Optional[TrustService] = None) -> Classification:
    return TrustClassifier(metadata_dir, trust_service).classify(trust_relationships)
