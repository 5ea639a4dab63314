"""Unit tests for API response schemas."""

from carpool.models.records import (
    CarpoolGroup,
    CarpoolMembership,
    GroupCandidate,
    GroupMember,
    OfficeLocation,
    User,
)
from carpool.models.schemas.carpool import carpool_responses


class TestCarpoolResponses:
    def test_reads_computed_fields(self):
        office = OfficeLocation(id=1, name="HQ", address="1 Main St", latitude=1.0, longitude=2.0)
        group = CarpoolGroup(id=7, name="Early", work_location_id=1, max_size=2)
        member = GroupMember(
            membership=CarpoolMembership(id=3, user_id="alice", carpool_group_id=7, is_organizer=True),
            user=User(id="alice"),
        )

        [response] = carpool_responses([GroupCandidate(group=group, office=office, members=(member,))])

        assert response.group.name == "Early"
        assert response.office.name == "HQ"
        assert response.member_count == 1
        assert response.remaining_capacity == 1
        assert response.is_full is False
        assert response.members[0].user_id == "alice"
        assert response.members[0].is_organizer is True

    def test_group_without_office(self):
        group = CarpoolGroup(id=7, name="Early", work_location_id=99, max_size=1)

        [response] = carpool_responses([GroupCandidate(group=group, office=None)])

        assert response.office is None
        assert response.members == []
