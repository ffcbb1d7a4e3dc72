"""
MintMate 行情数据服务
独立的投资行情微服务，提供 HTTP 接口

架构分层：
  数据获取层 (Acquisition)  → 并发请求多个行情提供商（Yahoo / Finnhub / Twelve Data / CoinGecko / Binance）
  缓存层     (Cache)        → 进程内历史数据缓存（5 分钟新鲜期，最多 100 条）
  处理层     (Processing)   → 数据清洗、格式化、标准化
  分析层     (Analysis)     → 收益率 / 波动率等指标计算
"""

__version__ = "1.0.0"
