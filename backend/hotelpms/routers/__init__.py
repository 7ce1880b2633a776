# API Routers
from hotelpms.routers import (
    auth, branches, rooms, checkin, reservations, reception, guests,
    inventory, dashboard, reports, settings, rpc, realtime
)

__all__ = [
    'auth', 'branches', 'rooms', 'checkin', 'reservations', 'reception', 'guests',
    'inventory', 'dashboard', 'reports', 'settings', 'rpc', 'realtime'
]
