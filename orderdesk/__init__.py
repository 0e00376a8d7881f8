"""
                Order Desk

Order lifecycle core for a restaurant ordering product: the state
machine behind the live orders dashboard, the staff poller with new-order
alerts, the diner's order tracker and the filtering used by the dashboard.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
