"""Read-only lookup over the two user collections.

Job seekers and employers live in separate collections (``Jobseeker`` and
``Employeer``). ``UserDirectory.resolve`` hides the "try one, then the
other" lookup behind a single call returning a tagged ``UserIdentity``.
"""
import logging
from typing import Any, Dict, List

from pymongo.errors import PyMongoError

from jobnest_server.exception.errors import PersistenceFailure
from jobnest_server.messaging.models import UserIdentity, UserKind
from jobnest_server.utils.helpers import id_query_value, normalize_doc

logger = logging.getLogger(__name__)

JOBSEEKER_COLLECTION = 'Jobseeker'
EMPLOYER_COLLECTION = 'Employeer'

EMPLOYER_PUBLIC_FIELDS = {'name': 1, 'emailId': 1, 'industry': 1, 'description': 1}
JOBSEEKER_PUBLIC_FIELDS = {'name': 1, 'emailId': 1, 'skills': 1, 'jobPreference': 1, 'experience': 1}


class UserDirectory:
    """Polymorphic user lookup across job seekers and employers."""

    def __init__(self, jobseekers, employers):
        self.jobseekers = jobseekers
        self.employers = employers
        self._by_kind = [
            (UserKind.JOBSEEKER, jobseekers),
            (UserKind.EMPLOYER, employers),
        ]

    @classmethod
    def from_db(cls, db) -> 'UserDirectory':
        return cls(db[JOBSEEKER_COLLECTION], db[EMPLOYER_COLLECTION])

    def resolve(self, user_id: str) -> UserIdentity:
        """Return who user_id is. Absence from both collections yields an unknown identity."""
        query = {'_id': id_query_value(user_id)}
        try:
            for kind, collection in self._by_kind:
                doc = collection.find_one(query, {'name': 1})
                if doc:
                    return UserIdentity(user_id, kind, doc.get('name'))
        except PyMongoError as e:
            logger.exception(f"User lookup failed for {user_id}")
            raise PersistenceFailure('Failed to look up user', cause=e) from e
        logger.debug(f"User {user_id} not found in either user collection")
        return UserIdentity.unknown(user_id)

    def connectable_users(self, user_id: str, user_kind) -> List[Dict[str, Any]]:
        """Users the caller may start a conversation with.

        Job seekers see employers; employers see job seekers who have
        completed the assessment.
        """
        exclude_self = {'$ne': id_query_value(user_id)}
        try:
            if UserKind.parse(getattr(user_kind, 'value', user_kind)) == UserKind.JOBSEEKER:
                docs = self.employers.find({'_id': exclude_self}, EMPLOYER_PUBLIC_FIELDS)
            else:
                docs = self.jobseekers.find({'_id': exclude_self, 'test': True}, JOBSEEKER_PUBLIC_FIELDS)
            return [normalize_doc(d) for d in docs]
        except PyMongoError as e:
            logger.exception(f"Failed to list connectable users for {user_id}")
            raise PersistenceFailure('Failed to load users', cause=e) from e
