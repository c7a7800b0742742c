"""
GlobalEats 结算与订单服务
"""

__version__ = "1.0.0"
