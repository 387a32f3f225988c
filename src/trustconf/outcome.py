"""Per item outcomes of a configuration run and their aggregate."""
import logging
from typing import Any
from typing import List
from typing import Optional

from idpyoidc.impexp import ImpExp

logger = logging.getLogger(__name__)


class Outcome(ImpExp):
    parameter = {
        "item": "",
        "value": None,
        "reason": ""
    }
    fatal = False
    skipped = False

    def __init__(self, item: str = "", value: Any = None, reason: str = ""):
        ImpExp.__init__(self)
        self.item = item
        self.value = value
        self.reason = reason

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.item}: {self.reason}>"


class Ok(Outcome):
    pass


class Skipped(Outcome):
    skipped = True


class Fatal(Outcome):
    fatal = True

    def __init__(self, item: str = "", value: Any = None, reason: str = "",
                 error: Optional[Exception] = None):
        Outcome.__init__(self, item=item, value=value, reason=reason or str(error or ""))
        self.error = error


class SynthesisResult(ImpExp):
    """
    What a configuration run ended up doing. `success` is False as soon as anything
    fatal happened. `complete` is True only if every artifact of the run was written.
    """
    parameter = {
        "success": bool,
        "complete": bool,
        "written": [],
        "outcomes": []
    }

    def __init__(self, success: bool = True, complete: bool = False,
                 written: Optional[List[str]] = None,
                 outcomes: Optional[List[Outcome]] = None):
        ImpExp.__init__(self)
        self.success = success
        self.complete = complete
        self.written = written or []
        self.outcomes = outcomes or []

    def __bool__(self):
        return self.success and self.complete

    def add(self, outcome: Outcome):
        self.outcomes.append(outcome)
        if outcome.fatal:
            self.success = False
            logger.error(f"{outcome.item}: {outcome.reason}")
        elif outcome.skipped:
            logger.warning(f"Skipped {outcome.item}: {outcome.reason}")
        return outcome

    def extend(self, outcomes: List[Outcome]):
        for _outcome in outcomes:
            self.add(_outcome)

    def fail(self, item: str, error: Exception, reason: str = "") -> Fatal:
        return self.add(Fatal(item=item, error=error, reason=reason))

    @property
    def errors(self) -> List[Fatal]:
        return [o for o in self.outcomes if o.fatal]

    @property
    def skipped(self) -> List[Skipped]:
        return [o for o in self.outcomes if o.skipped]

    def summary(self) -> str:
        return (f"success={self.success} complete={self.complete} "
                f"written={len(self.written)} skipped={len(self.skipped)} "
                f"errors={len(self.errors)}")
