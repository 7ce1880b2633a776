# Business Services
from hotelpms.services.room_service import RoomService
from hotelpms.services.checkin_service import CheckInService
from hotelpms.services.reservation_service import ReservationService
from hotelpms.services.reception_service import ReceptionService
from hotelpms.services.guest_service import GuestService
from hotelpms.services.inventory_service import InventoryService
from hotelpms.services.branch_service import BranchService
from hotelpms.services.auth_service import AuthService
from hotelpms.services.settings_service import SettingsService
from hotelpms.services.dashboard_service import DashboardService
from hotelpms.services.report_service import ReportService

__all__ = [
    'RoomService', 'CheckInService', 'ReservationService', 'ReceptionService',
    'GuestService', 'InventoryService', 'BranchService', 'AuthService',
    'SettingsService', 'DashboardService', 'ReportService'
]
