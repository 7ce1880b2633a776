"""
分店服务测试
"""
import pytest
from datetime import date, timedelta
from decimal import Decimal

from hotelpms.models.ontology import Branch, Order, OrderStatus, Reservation, ReservationStatus, RoomStatus
from hotelpms.models.schemas import BranchCreate, BranchUpdate
from hotelpms.services import branch_service as branch_module
from hotelpms.services.branch_service import BranchService, display_name, empty_branch_stats


@pytest.fixture
def service(db_session):
    return BranchService(db_session)


@pytest.fixture
def second_branch(db_session):
    branch = Branch(name="Hotel Paraíso Cusco", code="CUS", is_active=True)
    db_session.add(branch)
    db_session.commit()
    db_session.refresh(branch)
    return branch


class TestBranchList:

    def test_display_name(self, sample_branch):
        assert display_name(sample_branch) == "Hotel Paraíso (HTP)"
        assert display_name({"name": "Demo", "code": "DM"}) == "Demo (DM)"
        assert display_name(None) == "未选择分店"

    def test_fallback_branch_when_empty(self, service):
        branches = service.get_branches()
        assert len(branches) == 1
        assert branches[0]["code"] == "HTP"

    def test_inactive_hidden(self, service, db_session, sample_branch, second_branch):
        second_branch.is_active = False
        db_session.commit()

        assert [b.code for b in service.get_branches()] == ["HTP"]
        assert len(service.get_branches(include_inactive=True)) == 2

    def test_available_branches_by_role(self, service, sample_branch, second_branch,
                                        admin_staff, reception_staff):
        assert len(service.get_available_branches(admin_staff)) == 2
        assert [b.code for b in service.get_available_branches(reception_staff)] == ["HTP"]


class TestBranchSwitch:

    def test_single_branch_anyone_can_switch(self, service, sample_branch, reception_staff):
        assert service.can_change_branch(reception_staff) is True

    def test_reception_cannot_switch(self, service, sample_branch, second_branch, reception_staff):
        assert service.can_change_branch(reception_staff) is False
        with pytest.raises(PermissionError, match="没有切换分店的权限"):
            service.select_branch(second_branch.id, reception_staff)

        assert service.select_branch(sample_branch.id, reception_staff).id == sample_branch.id

    def test_admin_switch(self, service, second_branch, admin_staff):
        assert service.select_branch(second_branch.id, admin_staff).code == "CUS"

    def test_unknown_branch(self, service, admin_staff):
        with pytest.raises(ValueError, match="分店不存在"):
            service.select_branch(999, admin_staff)


class TestBranchMaintenance:

    def test_create_and_duplicate_code(self, service, admin_staff):
        branch = service.create_branch(BranchCreate(name="Hotel Paraíso Arequipa", code="AQP"), admin_staff)
        assert branch.is_active is True

        with pytest.raises(ValueError, match="已存在"):
            service.create_branch(BranchCreate(name="Otro", code="AQP"), admin_staff)

    def test_create_requires_permission(self, service, manager_staff):
        with pytest.raises(PermissionError):
            service.create_branch(BranchCreate(name="X", code="X1"), manager_staff)

    def test_update(self, service, sample_branch, admin_staff):
        branch = service.update_branch(sample_branch.id, BranchUpdate(phone="01-555-0000"), admin_staff)
        assert branch.phone == "01-555-0000"
        assert branch.name == "Hotel Paraíso"


class TestBranchStats:

    def test_stats_from_procedures(self, service, db_session, multiple_rooms, sample_branch):
        multiple_rooms[0].status = RoomStatus.OCCUPIED
        multiple_rooms[1].status = RoomStatus.CHECKOUT
        db_session.add(Order(room_number="102", room_price=Decimal("80"), total=Decimal("95"),
                             status=OrderStatus.COMPLETED, check_out_date=date.today()))
        db_session.commit()

        stats = service.get_branch_stats(sample_branch.id)

        assert stats["source"] == "procedures"
        assert stats["rooms"]["total"] == 5
        assert stats["rooms"]["occupied"] == 1
        assert stats["rooms"]["checkout"] == 1
        assert stats["rooms"]["cleaning"] == 0
        assert stats["occupancy"]["rate"] == 20.0
        assert stats["revenue"]["total"] == 95.0
        assert stats["revenue"]["services"] == 15.0

    def test_falls_back_to_queries(self, service, monkeypatch, sample_reservation, sample_branch):
        def broken(*args, **kwargs):
            raise ValueError("procedure unavailable")

        monkeypatch.setattr(branch_module.rpc_registry, "call", broken)

        stats = service.get_branch_stats(sample_branch.id)

        assert stats["source"] == "queries"
        assert stats["rooms"]["total"] == 1
        assert stats["reservations"]["check_ins_today"] == 1
        assert stats["revenue"]["total"] == 160.0
        assert stats["revenue"]["rooms"] == 128.0

    def test_empty_stats_shape(self):
        stats = empty_branch_stats()
        assert stats["source"] == "empty"
        assert stats["rooms"]["total"] == 0

    def test_other_day(self, service, sample_branch, sample_reservation):
        stats = service.get_branch_stats(sample_branch.id, date.today() + timedelta(days=2))
        assert stats["reservations"]["check_ins_today"] == 0

    def test_other_branch_reservations_not_counted(self, service, db_session, monkeypatch,
                                                   sample_branch, sample_reservation, second_branch):
        db_session.add(Reservation(
            confirmation_code="CUS-2026-TEST02",
            guest_id=sample_reservation.guest_id,
            branch_id=second_branch.id,
            check_in_date=date.today(),
            check_out_date=date.today() + timedelta(days=1),
            rate=Decimal("90.00"),
            total_amount=Decimal("90.00"),
            status=ReservationStatus.CONFIRMED
        ))
        db_session.commit()

        stats = service.get_branch_stats(sample_branch.id)
        assert stats["reservations"]["check_ins_today"] == 1
        assert service.get_branch_stats(second_branch.id)["reservations"]["check_ins_today"] == 1

        def broken(*args, **kwargs):
            raise ValueError("procedure unavailable")

        monkeypatch.setattr(branch_module.rpc_registry, "call", broken)

        stats = service.get_branch_stats(sample_branch.id)
        assert stats["source"] == "queries"
        assert stats["reservations"]["check_ins_today"] == 1
        assert stats["reservations"]["total_reservations"] == 1
        assert stats["revenue"]["total"] == 160.0
