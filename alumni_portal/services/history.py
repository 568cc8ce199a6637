"""
Application History

Which jobs has an alumni applied to (any status)? Used by the alumni's own
"applied jobs" page and by admins, e.g. /api/admin/job/applied-jobs?roll=190430
"""

import logging
from typing import List, Optional

from alumni_portal.schemas.schemas import AppliedJobResponse, ApprovalStatus
from alumni_portal.services.repository import AlumniRepository, ApplicationRepository

logger = logging.getLogger(__name__)


class ApplicationHistoryReader:

    def __init__(
        self,
        alumni_repository: Optional[AlumniRepository] = None,
        application_repository: Optional[ApplicationRepository] = None
    ):
        self.alumni_repository = alumni_repository or AlumniRepository()
        self.application_repository = application_repository or ApplicationRepository()

    def get_applications(self, roll: str) -> List[AppliedJobResponse]:
        """
        All applications of the alumni with this roll number.

        Returns [] when no such alumni exists or the alumni is not approved.
        """
        alumni = self.alumni_repository.find_by_roll(roll)
        if not alumni:
            logger.debug("No alumni found for roll %s", roll)
            return []

        if alumni["approved"] != ApprovalStatus.approved.value:
            logger.debug("Alumni %s not approved", roll)
            return []

        return self.application_repository.list_applications(alumni["alumni_id"])
