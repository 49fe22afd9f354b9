"""
数据流分层架构
  Layer 1 – Acquisition  : 数据获取（Alpha Vantage / Frankfurter / RSS）
  Layer 2 – Cache        : 进程内快照缓存（字段级原子替换）
  Layer 3 – Processing   : 报价构建、新闻合并排序、K 线清洗
  Layer 4 – Analysis     : AI 市场简评
  Fallback / Synthetic   : 外部数据源失败时的降级与模拟数据
"""
