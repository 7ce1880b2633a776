"""
房间服务测试
覆盖房间维护、房态变更、房态统计与清洁任务
"""
import pytest
from decimal import Decimal

from hotelpms.models.events import EventType
from hotelpms.models.ontology import (
    Order, OrderStatus, RoomStatus, CleaningStatus, CleaningTaskStatus, TaskPriority
)
from hotelpms.models.schemas import RoomCreate, RoomUpdate, CleaningTaskCreate
from hotelpms.services.room_service import RoomService, cleaning_task_to_dict


@pytest.fixture
def service(db_session, published_events):
    return RoomService(db_session, event_publisher=published_events.append)


class TestRoomQueries:

    def test_filters(self, service, multiple_rooms):
        assert [r.number for r in service.get_rooms(floor=2)] == ["201", "202"]
        assert [r.number for r in service.get_rooms(search="20")] == ["201", "202"]
        assert service.get_rooms(status=RoomStatus.OCCUPIED) == []

    def test_get_by_number(self, service, sample_room):
        assert service.get_room_by_number("101").id == sample_room.id
        assert service.get_room_by_number("999") is None


class TestRoomCrud:

    def test_create(self, service, sample_branch):
        room = service.create_room(RoomCreate(number="301", floor=3, price=Decimal("150"),
                                              branch_id=sample_branch.id))

        assert room.status == RoomStatus.AVAILABLE
        assert room.cleaning_status == CleaningStatus.CLEAN

    def test_create_duplicate(self, service, sample_room):
        with pytest.raises(ValueError, match="已存在"):
            service.create_room(RoomCreate(number="101", floor=1, price=Decimal("80")))

    def test_update(self, service, multiple_rooms):
        room = service.update_room(multiple_rooms[0].id, RoomUpdate(price=Decimal("95"), description="vista"))
        assert room.price == Decimal("95")

        with pytest.raises(ValueError, match="已存在"):
            service.update_room(multiple_rooms[0].id, RoomUpdate(number="102"))

    def test_delete_with_active_order(self, service, db_session, sample_room):
        db_session.add(Order(room_number="101", guest_name="Ana", status=OrderStatus.ACTIVE))
        db_session.commit()

        with pytest.raises(ValueError, match="在住订单"):
            service.delete_room(sample_room.id)

    def test_delete(self, service, sample_room):
        assert service.delete_room(sample_room.id) is True
        assert service.get_room_by_number("101") is None


class TestRoomStatus:

    def test_status_change_publishes_event(self, service, sample_room, published_events):
        room = service.update_room_status(sample_room.id, RoomStatus.MAINTENANCE)

        assert room.status == RoomStatus.MAINTENANCE
        assert published_events[0].event_type == EventType.ROOM_STATUS_CHANGED
        assert published_events[0].data["old_status"] == "available"
        assert published_events[0].data["new_status"] == "maintenance"

    def test_same_status_is_silent(self, service, sample_room, published_events):
        service.update_room_status_by_number("101", RoomStatus.AVAILABLE)
        assert published_events == []

    def test_status_event_waits_for_commit(self, service, db_session, sample_room, published_events):
        service.set_status(sample_room, RoomStatus.OUT_OF_ORDER, "manual")
        assert published_events == []

        db_session.commit()
        assert [e.data["new_status"] for e in published_events] == ["out_of_order"]

    def test_rolled_back_status_change_is_not_published(self, service, db_session, sample_room,
                                                        published_events):
        service.set_status(sample_room, RoomStatus.OUT_OF_ORDER, "manual")
        service.add_cleaning_task(sample_room)
        db_session.rollback()
        db_session.commit()

        assert published_events == []
        assert service.get_room(sample_room.id).status == RoomStatus.AVAILABLE

    def test_checkout_marks_dirty(self, service, sample_room):
        room = service.update_room_status(sample_room.id, RoomStatus.CHECKOUT)
        assert room.cleaning_status == CleaningStatus.DIRTY

    def test_unknown_room(self, service):
        with pytest.raises(ValueError, match="不存在"):
            service.update_room_status_by_number("999", RoomStatus.AVAILABLE)

    def test_stats(self, service, db_session, multiple_rooms):
        multiple_rooms[0].status = RoomStatus.OCCUPIED
        multiple_rooms[1].status = RoomStatus.CHECKOUT
        db_session.commit()

        stats = service.get_room_stats()

        assert stats["total"] == 5
        assert stats["cleaning"] == 1
        assert stats["occupancy_rate"] == 20


class TestCleaningTasks:

    def test_create_task(self, service, sample_room, housekeeping_staff, published_events):
        task = service.create_cleaning_task(CleaningTaskCreate(
            room_number="101", staff_id=housekeeping_staff.id, priority=TaskPriority.HIGH
        ))

        assert task.status == CleaningTaskStatus.PENDING
        assert sample_room.status == RoomStatus.CLEANING
        assert published_events[0].event_type == EventType.CLEANING_TASK_CREATED
        assert cleaning_task_to_dict(task)["assigned_cleaner"] == "清洁员小李"

    def test_inactive_cleaner(self, service, db_session, sample_room, housekeeping_staff):
        housekeeping_staff.is_active = False
        db_session.commit()

        with pytest.raises(ValueError, match="清洁员"):
            service.create_cleaning_task(CleaningTaskCreate(room_number="101", staff_id=housekeeping_staff.id))

    def test_assign_batch(self, service, multiple_rooms, housekeeping_staff):
        result = service.assign_cleaning(["101", "102", "999"], housekeeping_staff.id)

        assert result["success"] is True
        assert len(result["task_ids"]) == 2
        assert "999" in result["errors"]
        assert result["message"] == "2/3 间房已分配"
        assert len(service.get_cleaning_tasks(staff_id=housekeeping_staff.id)) == 2

    def test_start_and_complete(self, service, sample_room, housekeeping_staff, published_events):
        task = service.create_cleaning_task(CleaningTaskCreate(room_number="101"))

        task = service.start_cleaning_task(task.id, housekeeping_staff.id)
        assert task.status == CleaningTaskStatus.IN_PROGRESS
        assert task.staff_id == housekeeping_staff.id
        with pytest.raises(ValueError, match="待处理"):
            service.start_cleaning_task(task.id)

        task = service.complete_cleaning_task(task.id, quality_score=9)
        assert task.status == CleaningTaskStatus.COMPLETED
        assert task.actual_duration == 0
        assert sample_room.status == RoomStatus.AVAILABLE
        assert sample_room.cleaning_status == CleaningStatus.CLEAN
        assert published_events[-1].event_type == EventType.CLEANING_TASK_COMPLETED
        assert published_events[-1].data["quality_score"] == 9

        with pytest.raises(ValueError, match="已完成"):
            service.complete_cleaning_task(task.id)
