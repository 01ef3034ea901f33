"""
Budget Trip Planner 共享模块
配置、日志、错误分类、数据模型、数据库、缓存、实时推送和监控
"""
