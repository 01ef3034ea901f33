"""
微服务集合
"""
