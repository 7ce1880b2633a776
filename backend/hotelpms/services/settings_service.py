"""
系统设置服务
默认值 + 数据库覆盖值（JSON 文本存储），按分类管理，支持导入导出
"""
import copy
import json
import re
from datetime import datetime
from typing import Optional, Dict, Any
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hotelpms.models.ontology import SystemSetting, Staff
from hotelpms.security import permissions as perms

logger = logging.getLogger(__name__)

SETTING_CATEGORIES = ["general", "operations", "financial", "notifications", "integrations", "security"]

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "general": {
        "hotel_name": "Hotel Paraíso",
        "hotel_logo": "",
        "currency": "PEN",
        "timezone": "America/Lima",
        "language": "es",
    },
    "operations": {
        "check_in_time": "14:00",
        "check_out_time": "11:00",
        "max_occupancy_days": 30,
        "early_checkin_fee": 0,
        "late_checkout_fee": 0,
        "cancellation_policy": 24,     # 小时
    },
    "financial": {
        "tax_rate": 18.0,
        "service_charge": 0,
        "payment_methods": ["cash", "card", "transfer"],
        "auto_calculate_taxes": True,
    },
    "notifications": {
        "email_notifications": True,
        "sms_notifications": False,
        "reservation_alerts": True,
        "payment_alerts": True,
        "checkout_reminders": True,
    },
    "integrations": {
        "booking_engine": False,
        "channel_manager": False,
        "pos_integration": False,
    },
    "security": {
        "session_timeout": 480,        # 分钟
        "password_expiry": 0,          # 天，0 为不过期
        "two_factor_auth": False,
        "audit_log_retention": 365,    # 天
    },
}

SETTING_CATEGORY_MAP: Dict[str, str] = {
    key: category for category, values in DEFAULT_SETTINGS.items() for key in values
}

SETTING_DESCRIPTIONS: Dict[str, str] = {
    "hotel_name": "酒店名称",
    "hotel_logo": "酒店 Logo 地址",
    "currency": "结算币种",
    "timezone": "时区",
    "language": "界面语言",
    "check_in_time": "标准入住时间",
    "check_out_time": "标准退房时间",
    "max_occupancy_days": "单次最长入住天数",
    "early_checkin_fee": "提前入住费用",
    "late_checkout_fee": "延迟退房费用",
    "cancellation_policy": "免费取消时限（小时）",
    "tax_rate": "税率（%）",
    "service_charge": "服务费",
    "payment_methods": "可用支付方式",
    "auto_calculate_taxes": "自动计算税费",
    "email_notifications": "邮件通知",
    "sms_notifications": "短信通知",
    "reservation_alerts": "预订提醒",
    "payment_alerts": "付款提醒",
    "checkout_reminders": "退房提醒",
    "booking_engine": "预订引擎对接",
    "channel_manager": "渠道管理对接",
    "pos_integration": "POS 对接",
    "session_timeout": "会话超时（分钟）",
    "password_expiry": "密码有效期（天）",
    "two_factor_auth": "双因素认证",
    "audit_log_retention": "审计日志保留天数",
}

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# key -> (最小值, 最大值)
NUMERIC_RANGES = {
    "tax_rate": (0, 100),
    "max_occupancy_days": (1, 365),
    "session_timeout": (30, 1440),
    "cancellation_policy": (0, 168),
}


def flat_defaults() -> Dict[str, Any]:
    """key -> 默认值"""
    return {
        key: copy.deepcopy(value)
        for values in DEFAULT_SETTINGS.values() for key, value in values.items()
    }


def validate_setting(key: str, value: Any) -> None:
    """校验设置值，不合法时抛出 ValueError"""
    if key in NUMERIC_RANGES:
        low, high = NUMERIC_RANGES[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} 必须是数字")
        if not low <= value <= high:
            raise ValueError(f"{key} 必须在 {low} 到 {high} 之间")
    if key in ("check_in_time", "check_out_time"):
        if not isinstance(value, str) or not TIME_PATTERN.match(value):
            raise ValueError(f"{key} 必须是 HH:MM 格式")


class SettingsService:
    """系统设置服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_all(self) -> Dict[str, Any]:
        """所有设置：数据库值覆盖默认值；数据源异常时返回默认值"""
        result = flat_defaults()
        try:
            rows = self.db.query(SystemSetting).all()
        except SQLAlchemyError as e:
            logger.error(f"Error loading settings: {e}")
            self.db.rollback()
            return result

        for row in rows:
            try:
                result[row.key] = json.loads(row.value) if row.value is not None else None
            except ValueError:
                logger.warning(f"Setting {row.key} holds invalid JSON, using raw text")
                result[row.key] = row.value
        return result

    def get(self, key: str, default: Any = None) -> Any:
        return self.get_all().get(key, default)

    def get_by_category(self, category: str) -> Dict[str, Any]:
        if category not in SETTING_CATEGORIES:
            raise ValueError(f"未知的设置分类: {category}")
        values = self.get_all()
        keys = [k for k, c in SETTING_CATEGORY_MAP.items() if c == category]
        stored = self.db.query(SystemSetting.key).filter(SystemSetting.category == category).all()
        keys.extend(k for (k,) in stored if k not in keys)
        return {key: values.get(key) for key in keys}

    def _upsert(self, key: str, value: Any, staff: Staff, category: Optional[str] = None) -> SystemSetting:
        validate_setting(key, value)
        row = self.db.query(SystemSetting).filter(SystemSetting.key == key).first()
        if row is None:
            row = SystemSetting(key=key)
            self.db.add(row)
        row.value = json.dumps(value, ensure_ascii=False)
        row.category = category or SETTING_CATEGORY_MAP.get(key, row.category or "general")
        row.description = SETTING_DESCRIPTIONS.get(key, row.description)
        row.updated_by = staff.id
        return row

    def update_setting(self, key: str, value: Any, staff: Staff,
                       category: Optional[str] = None) -> Dict[str, Any]:
        perms.ensure_permission(staff, perms.SYSTEM_SETTINGS, "无权修改系统设置")
        self._upsert(key, value, staff, category)
        self.db.commit()
        logger.info(f"Setting {key} updated by {staff.username}")
        return {"key": key, "value": value}

    def update_many(self, values: Dict[str, Any], staff: Staff) -> Dict[str, Any]:
        """批量更新，任一值不合法时全部不生效"""
        perms.ensure_permission(staff, perms.SYSTEM_SETTINGS, "无权修改系统设置")
        for key, value in values.items():
            validate_setting(key, value)
        for key, value in values.items():
            self._upsert(key, value, staff)
        self.db.commit()
        return self.get_all()

    def reset_to_defaults(self, staff: Staff, category: Optional[str] = None) -> Dict[str, Any]:
        """恢复默认值（可按分类）"""
        perms.ensure_permission(staff, perms.SYSTEM_SETTINGS, "无权修改系统设置")
        query = self.db.query(SystemSetting)
        if category:
            if category not in SETTING_CATEGORIES:
                raise ValueError(f"未知的设置分类: {category}")
            query = query.filter(SystemSetting.category == category)
        count = query.delete(synchronize_session=False)
        self.db.commit()
        logger.info(f"Reset {count} settings ({category or 'all'}) by {staff.username}")
        return self.get_all()

    def export_settings(self) -> Dict[str, Any]:
        values = self.get_all()
        return {
            "export_date": datetime.now().isoformat(),
            "hotel_name": values.get("hotel_name"),
            "settings": {
                key: {
                    "value": value,
                    "category": SETTING_CATEGORY_MAP.get(key, "general"),
                    "description": SETTING_DESCRIPTIONS.get(key, ""),
                }
                for key, value in values.items()
            },
        }

    def import_settings(self, data: Dict[str, Any], staff: Staff) -> Dict[str, Any]:
        """导入 export_settings 格式的数据"""
        perms.ensure_permission(staff, perms.SYSTEM_SETTINGS, "无权修改系统设置")
        entries = data.get("settings") if isinstance(data, dict) else None
        if not isinstance(entries, dict):
            raise ValueError("导入文件格式无效")
        for key, entry in entries.items():
            if not isinstance(entry, dict) or "value" not in entry:
                raise ValueError(f"导入文件格式无效: {key}")
            validate_setting(key, entry["value"])

        for key, entry in entries.items():
            self._upsert(key, entry["value"], staff, entry.get("category"))
        self.db.commit()
        logger.info(f"Imported {len(entries)} settings by {staff.username}")
        return self.get_all()
