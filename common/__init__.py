"""
common 模块

集群成员共用的基础设施：日志、加密、Server监管层和会话。
"""
