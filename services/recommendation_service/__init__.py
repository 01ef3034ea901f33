"""
推荐服务
目的地推荐、示例数据回退、目的地分析和出行辅助查询
"""
