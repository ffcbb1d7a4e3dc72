"""
数据流分层架构
  Layer 1 – Acquisition  : 数据获取（多行情提供商并发请求）
  Layer 2 – Cache        : 进程内历史数据缓存
  Layer 3 – Processing   : 数据清洗与格式化
  Layer 4 – Analysis     : 收益 / 波动率指标计算
"""
