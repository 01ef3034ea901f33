"""
协作服务
小组行程的成员、邀请、投票、聊天、行程安排、交通、预算分摊、收藏与点评
"""
