"""
Layer 3 – 数据处理层
对各数据源返回的原始记录进行清洗、格式化、标准化，生成统一的 PricePoint 序列。
"""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from market_service.models.market import PricePoint

logger = logging.getLogger(__name__)

_PRICE_COLS = ["open", "high", "low"]
_NUMERIC_COLS = ["open", "high", "low", "close", "volume"]


class ProcessingLayer:
    """数据处理层：清洗 + 格式化 + 标准化"""

    def normalize_ohlcv(self, records: List[Dict[str, Any]]) -> pd.DataFrame:
        """
        将原始记录列表标准化为 DataFrame

        - 收盘价缺失的行直接丢弃
        - 开/高/低为空或 0 时用收盘价代替，成交量为空时记 0
        - 日期统一为 YYYY-MM-DD，按日期升序，重复日期保留最后一条
        """
        if not records:
            return pd.DataFrame()

        df = pd.DataFrame(records)
        if "close" not in df.columns or "date" not in df.columns:
            return pd.DataFrame()

        # 类型转换
        for col in _NUMERIC_COLS:
            if col in df.columns:
                df[col] = pd.to_numeric(df[col], errors="coerce").astype(float)

        valid = df["close"].notna() & (df["close"].abs() != float("inf"))
        if not valid.all():
            logger.debug(f"丢弃 {int((~valid).sum())} 条收盘价缺失的记录")
        df = df[valid].copy()

        for col in _PRICE_COLS:
            if col in df.columns:
                df[col] = df[col].where(df[col].notna() & (df[col] != 0), df["close"])
        if "volume" in df.columns:
            df["volume"] = df["volume"].fillna(0.0)

        # 日期格式统一
        df["date"] = pd.to_datetime(df["date"], errors="coerce")
        df = df.dropna(subset=["date"])
        df["date"] = df["date"].dt.strftime("%Y-%m-%d")

        df = df.drop_duplicates(subset=["date"], keep="last")
        df = df.sort_values("date").reset_index(drop=True)

        return df

    def tail(self, df: pd.DataFrame, limit: Optional[int]) -> pd.DataFrame:
        """保留最近 limit 条"""
        if df.empty or not limit:
            return df
        return df.tail(limit).reset_index(drop=True)

    def to_points(self, df: pd.DataFrame) -> List[PricePoint]:
        """DataFrame 转换为 PricePoint 列表"""
        if df.empty:
            return []
        columns = [c for c in ["date"] + _NUMERIC_COLS if c in df.columns]
        points = []
        for row in df[columns].to_dict(orient="records"):
            points.append(PricePoint(**{k: v for k, v in row.items() if pd.notna(v)}))
        return points

    def normalize_points(
        self, records: List[Dict[str, Any]], limit: Optional[int] = None
    ) -> List[PricePoint]:
        return self.to_points(self.tail(self.normalize_ohlcv(records), limit))


# ── 模块级别单例 ──────────────────────────────────────────
_processor: Optional[ProcessingLayer] = None


def get_processing_layer() -> ProcessingLayer:
    global _processor
    if _processor is None:
        _processor = ProcessingLayer()
    return _processor
