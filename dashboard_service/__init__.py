"""
市场看板数据服务
轮询行情 / 汇率 / 新闻数据源，缓存于进程内存，并定期生成 AI 市场简评

架构分层：
  数据获取层 (Acquisition)  → Alpha Vantage / Frankfurter / RSS 原始数据
  降级层     (Fallback)     → 超时 + 失败时返回模拟数据
  缓存层     (Cache)        → 进程内快照，按字段原子替换
  处理层     (Processing)   → 报价构建、新闻合并排序、K 线标准化
  分析层     (Analysis)     → 组装提示词并调用大模型生成简评
"""

__version__ = "1.0.0"
