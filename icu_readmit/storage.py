"""
Repository interfaces for per-user state.

Assessment history and user profiles are kept behind small get/put stores
that callers inject (the dashboard, the CLI). The scoring functions never
import this module.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

from .records import RiskAssessment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserAccount:
    id: str
    email: str
    name: str = ""


class HistoryStore(ABC):
    """Assessment history. One entry per patient id; the first write wins."""

    @abstractmethod
    def get(self, patient_id: str) -> Optional[Dict]:
        pass

    @abstractmethod
    def put(self, assessment: RiskAssessment) -> bool:
        """Store an assessment. Returns False if the patient is already stored."""
        pass

    @abstractmethod
    def list(self) -> List[Dict]:
        pass


class UserStore(ABC):

    @abstractmethod
    def get(self, email: str) -> Optional[UserAccount]:
        pass

    @abstractmethod
    def put(self, user: UserAccount) -> None:
        pass


class InMemoryHistoryStore(HistoryStore):

    def __init__(self):
        self._entries: Dict[str, Dict] = {}

    def get(self, patient_id: str) -> Optional[Dict]:
        return self._entries.get(patient_id)

    def put(self, assessment: RiskAssessment) -> bool:
        if assessment.patient_id in self._entries:
            return False
        self._entries[assessment.patient_id] = assessment.to_dict()
        return True

    def list(self) -> List[Dict]:
        return list(self._entries.values())


class JsonHistoryStore(HistoryStore):
    """
    File-backed history, one JSON list per file.
    """

    def __init__(self, path: Union[str, Path] = "data/patient_history.json"):
        self.path = Path(path)

    def _load(self) -> List[Dict]:
        if not self.path.exists():
            return []
        with open(self.path, 'r') as f:
            return json.load(f)

    def _save(self, entries: List[Dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(entries, f, indent=2)

    def get(self, patient_id: str) -> Optional[Dict]:
        for entry in self._load():
            if entry['patient_id'] == patient_id:
                return entry
        return None

    def put(self, assessment: RiskAssessment) -> bool:
        entries = self._load()
        if any(e['patient_id'] == assessment.patient_id for e in entries):
            return False
        entries.append(assessment.to_dict())
        self._save(entries)
        logger.debug("Saved assessment for %s to %s", assessment.patient_id, self.path)
        return True

    def list(self) -> List[Dict]:
        return self._load()


class InMemoryUserStore(UserStore):

    def __init__(self):
        self._users: Dict[str, UserAccount] = {}

    def get(self, email: str) -> Optional[UserAccount]:
        return self._users.get(email.lower())

    def put(self, user: UserAccount) -> None:
        self._users[user.email.lower()] = user


class JsonUserStore(UserStore):

    def __init__(self, path: Union[str, Path] = "data/users.json"):
        self.path = Path(path)

    def _load(self) -> Dict[str, Dict]:
        if not self.path.exists():
            return {}
        with open(self.path, 'r') as f:
            return json.load(f)

    def get(self, email: str) -> Optional[UserAccount]:
        data = self._load().get(email.lower())
        return UserAccount(**data) if data else None

    def put(self, user: UserAccount) -> None:
        users = self._load()
        users[user.email.lower()] = asdict(user)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(users, f, indent=2)
