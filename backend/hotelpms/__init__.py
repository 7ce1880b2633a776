"""
HotelPMS - 酒店管理后端
"""
__version__ = "1.0.0"
