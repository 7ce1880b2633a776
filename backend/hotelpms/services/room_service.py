"""
房间服务
房间维护、房态变更、房态统计以及清洁任务
房态变更和清洁任务会发布事件
"""
from datetime import datetime
from typing import List, Optional, Callable, Dict, Any
import logging

from sqlalchemy import or_, cast, String
from sqlalchemy.orm import Session

from hotelpms.models.ontology import (
    Room, RoomStatus, CleaningStatus, RoomCleaning, CleaningTaskStatus,
    CleaningType, TaskPriority, Staff, Order, OrderStatus
)
from hotelpms.models.schemas import RoomCreate, RoomUpdate, CleaningTaskCreate
from hotelpms.models.events import EventType, RoomStatusChangedData, CleaningTaskData
from hotelpms.services.event_bus import event_bus, Event
from hotelpms.services.pending_events import publish_after_commit

logger = logging.getLogger(__name__)

# 清洁完成前算作"待清洁"的房态
NEEDS_CLEANING = (RoomStatus.CHECKOUT, RoomStatus.CLEANING)


class RoomService:
    """房间服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        # 支持依赖注入事件发布器，便于测试
        self._publish_event = event_publisher or event_bus.publish

    # ============== 房间操作 ==============

    def get_rooms(self, status: Optional[RoomStatus] = None, floor: Optional[int] = None,
                  room_type: Optional[str] = None, search: Optional[str] = None,
                  branch_id: Optional[int] = None) -> List[Room]:
        """房间列表，search 匹配房间号/房型/楼层/描述"""
        query = self.db.query(Room)

        if status is not None:
            query = query.filter(Room.status == status)
        if floor is not None:
            query = query.filter(Room.floor == floor)
        if room_type:
            query = query.filter(Room.room_type == room_type)
        if branch_id is not None:
            query = query.filter(Room.branch_id == branch_id)
        if search:
            term = f"%{search.strip().lower()}%"
            query = query.filter(or_(
                Room.number.ilike(term),
                Room.room_type.ilike(term),
                cast(Room.floor, String).ilike(term),
                Room.description.ilike(term),
            ))

        return query.order_by(Room.floor, Room.number).all()

    def get_room(self, room_id: int) -> Optional[Room]:
        return self.db.query(Room).filter(Room.id == room_id).first()

    def get_room_by_number(self, number: str) -> Optional[Room]:
        return self.db.query(Room).filter(Room.number == str(number)).first()

    def create_room(self, data: RoomCreate) -> Room:
        """创建房间，初始为空闲"""
        if self.get_room_by_number(data.number):
            raise ValueError(f"房间号 '{data.number}' 已存在")

        room = Room(**data.model_dump(), status=RoomStatus.AVAILABLE, cleaning_status=CleaningStatus.CLEAN)
        self.db.add(room)
        self.db.commit()
        self.db.refresh(room)
        return room

    def update_room(self, room_id: int, data: RoomUpdate) -> Room:
        room = self.get_room(room_id)
        if not room:
            raise ValueError("房间不存在")

        update_data = data.model_dump(exclude_unset=True)
        if 'number' in update_data:
            existing = self.get_room_by_number(update_data['number'])
            if existing and existing.id != room_id:
                raise ValueError(f"房间号 '{update_data['number']}' 已存在")

        for key, value in update_data.items():
            setattr(room, key, value)

        self.db.commit()
        self.db.refresh(room)
        return room

    def delete_room(self, room_id: int) -> bool:
        room = self.get_room(room_id)
        if not room:
            raise ValueError("房间不存在")

        active = self.db.query(Order).filter(
            Order.room_number == room.number,
            Order.status == OrderStatus.ACTIVE
        ).count()
        if active:
            raise ValueError("房间有在住订单，无法删除")

        self.db.delete(room)
        self.db.commit()
        return True

    def set_status(self, room: Room, status: RoomStatus, reason: str = "") -> Room:
        """变更房态，事件在调用方提交事务后发布"""
        old_status = room.status
        room.status = status
        if status in NEEDS_CLEANING:
            room.cleaning_status = CleaningStatus.DIRTY
        elif status == RoomStatus.AVAILABLE and old_status in NEEDS_CLEANING:
            room.cleaning_status = CleaningStatus.CLEAN

        if old_status != status:
            publish_after_commit(self.db, self._publish_event, Event(
                event_type=EventType.ROOM_STATUS_CHANGED,
                timestamp=datetime.now(),
                data=RoomStatusChangedData(
                    room_id=room.id,
                    room_number=room.number,
                    old_status=old_status.value if old_status else "",
                    new_status=status.value,
                    reason=reason,
                ).to_dict(),
                source="room_service"
            ))
        return room

    def update_room_status(self, room_id: int, status: RoomStatus) -> Room:
        room = self.get_room(room_id)
        if not room:
            raise ValueError("房间不存在")
        self.set_status(room, status, "manual")
        self.db.commit()
        self.db.refresh(room)
        return room

    def update_room_status_by_number(self, number: str, status: RoomStatus) -> Room:
        room = self.get_room_by_number(number)
        if not room:
            raise ValueError(f"房间 {number} 不存在")
        return self.update_room_status(room.id, status)

    def get_room_stats(self) -> Dict[str, Any]:
        """房态统计"""
        rooms = self.db.query(Room.status).all()
        total = len(rooms)
        counts: Dict[RoomStatus, int] = {}
        for (status,) in rooms:
            counts[status] = counts.get(status, 0) + 1

        occupied = counts.get(RoomStatus.OCCUPIED, 0)
        return {
            "total": total,
            "available": counts.get(RoomStatus.AVAILABLE, 0),
            "occupied": occupied,
            "cleaning": counts.get(RoomStatus.CLEANING, 0) + counts.get(RoomStatus.CHECKOUT, 0),
            "maintenance": counts.get(RoomStatus.MAINTENANCE, 0),
            "out_of_order": counts.get(RoomStatus.OUT_OF_ORDER, 0),
            "occupancy_rate": round(occupied / total * 100) if total else 0,
        }

    # ============== 清洁任务 ==============

    def get_cleaning_tasks(self, status: Optional[CleaningTaskStatus] = None,
                           staff_id: Optional[int] = None) -> List[RoomCleaning]:
        query = self.db.query(RoomCleaning)
        if status is not None:
            query = query.filter(RoomCleaning.status == status)
        if staff_id is not None:
            query = query.filter(RoomCleaning.staff_id == staff_id)
        return query.order_by(RoomCleaning.created_at.desc(), RoomCleaning.id.desc()).all()

    def get_cleaning_task(self, task_id: int) -> Optional[RoomCleaning]:
        return self.db.query(RoomCleaning).filter(RoomCleaning.id == task_id).first()

    def add_cleaning_task(self, room: Room, cleaning_type: CleaningType = CleaningType.CHECKOUT,
                          priority: TaskPriority = TaskPriority.MEDIUM, staff_id: Optional[int] = None,
                          estimated_duration: int = 30, notes: Optional[str] = None) -> RoomCleaning:
        """新增清洁任务（由调用方提交事务，提交后发布事件）"""
        if staff_id is not None:
            cleaner = self.db.query(Staff).filter(Staff.id == staff_id).first()
            if not cleaner or not cleaner.is_active:
                raise ValueError("清洁员不存在或已停用")

        task = RoomCleaning(
            room_id=room.id,
            staff_id=staff_id,
            status=CleaningTaskStatus.PENDING,
            cleaning_type=cleaning_type,
            priority=priority,
            estimated_duration=estimated_duration,
            notes=notes or "",
        )
        self.db.add(task)
        self.db.flush()

        publish_after_commit(self.db, self._publish_event, Event(
            event_type=EventType.CLEANING_TASK_CREATED,
            timestamp=datetime.now(),
            data=CleaningTaskData(
                task_id=task.id,
                room_id=room.id,
                room_number=room.number,
                cleaning_type=cleaning_type.value,
                priority=priority.value,
            ).to_dict(),
            source="room_service"
        ))
        return task

    def create_cleaning_task(self, data: CleaningTaskCreate) -> RoomCleaning:
        """创建清洁任务，房间转为清洁中"""
        room = self.get_room_by_number(data.room_number)
        if not room:
            raise ValueError("房间不存在")

        task = self.add_cleaning_task(
            room,
            cleaning_type=data.cleaning_type,
            priority=data.priority,
            staff_id=data.staff_id,
            estimated_duration=data.estimated_duration,
            notes=data.notes,
        )
        self.set_status(room, RoomStatus.CLEANING, "cleaning_task")
        self.db.commit()
        self.db.refresh(task)
        return task

    def assign_cleaning(self, room_numbers: List[str], staff_id: int) -> Dict[str, Any]:
        """批量为房间创建退房清洁任务并指派给同一清洁员"""
        created = []
        errors = {}
        for number in room_numbers:
            try:
                task = self.create_cleaning_task(CleaningTaskCreate(
                    room_number=number,
                    staff_id=staff_id,
                    cleaning_type=CleaningType.CHECKOUT,
                    priority=TaskPriority.MEDIUM,
                    estimated_duration=30,
                ))
                created.append(task.id)
            except ValueError as e:
                self.db.rollback()
                errors[number] = str(e)

        return {
            "success": len(created) > 0,
            "task_ids": created,
            "errors": errors,
            "message": f"{len(created)}/{len(room_numbers)} 间房已分配",
        }

    def start_cleaning_task(self, task_id: int, staff_id: Optional[int] = None) -> RoomCleaning:
        task = self.get_cleaning_task(task_id)
        if not task:
            raise ValueError("清洁任务不存在")
        if task.status != CleaningTaskStatus.PENDING:
            raise ValueError("只能开始待处理的清洁任务")

        task.status = CleaningTaskStatus.IN_PROGRESS
        task.started_at = datetime.now()
        if staff_id is not None and task.staff_id is None:
            task.staff_id = staff_id
        task.room.cleaning_status = CleaningStatus.IN_PROGRESS

        self.db.commit()
        self.db.refresh(task)
        return task

    def complete_cleaning_task(self, task_id: int, quality_score: Optional[int] = None) -> RoomCleaning:
        """完成清洁任务，房间恢复空闲"""
        task = self.get_cleaning_task(task_id)
        if not task:
            raise ValueError("清洁任务不存在")
        if task.status == CleaningTaskStatus.COMPLETED:
            raise ValueError("清洁任务已完成")

        now = datetime.now()
        task.status = CleaningTaskStatus.COMPLETED
        task.completed_at = now
        task.quality_score = quality_score
        if task.started_at:
            task.actual_duration = max(int((now - task.started_at).total_seconds() // 60), 0)

        room = task.room
        self.set_status(room, RoomStatus.AVAILABLE, "cleaning_completed")
        room.cleaning_status = CleaningStatus.CLEAN
        self.db.commit()
        self.db.refresh(task)

        self._publish_event(Event(
            event_type=EventType.CLEANING_TASK_COMPLETED,
            timestamp=now,
            data=CleaningTaskData(
                task_id=task.id,
                room_id=room.id,
                room_number=room.number,
                cleaning_type=task.cleaning_type.value,
                priority=task.priority.value,
                quality_score=quality_score,
            ).to_dict(),
            source="room_service"
        ))
        return task


def cleaning_task_to_dict(task: RoomCleaning) -> Dict[str, Any]:
    """清洁任务附带房间号和清洁员姓名"""
    return {
        "id": task.id,
        "room_id": task.room_id,
        "room_number": task.room.number if task.room else None,
        "staff_id": task.staff_id,
        "assigned_cleaner": task.staff.full_name if task.staff else None,
        "status": task.status,
        "cleaning_type": task.cleaning_type,
        "priority": task.priority,
        "estimated_duration": task.estimated_duration,
        "actual_duration": task.actual_duration,
        "quality_score": task.quality_score,
        "notes": task.notes,
        "started_at": task.started_at,
        "completed_at": task.completed_at,
        "created_at": task.created_at,
    }
