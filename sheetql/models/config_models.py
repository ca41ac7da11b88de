from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

"""Config dataclasses for the spreadsheet ingestion pipeline.

These are the typed, frozen views that the rest of the package consumes.
Parsing / validation of the YAML file lives in sheetql/config/loader.py.
Every field has a default so that ``IngestConfig()`` is a usable config
without any file.
"""

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB


@dataclass(frozen=True)
class AnalysisSettings:
    """Sizes used by the analyzer / type inferencer.

    row_window and type_sample_rows bound the cost of analysis: type
    inference only sees the first ``type_sample_rows`` data values, so a
    column whose type distribution changes later can be misclassified.
    """
    row_window: int = 1000  # 解析対象行数 (ヘッダ行込み)
    type_sample_rows: int = 100  # 型推定に使う先頭データ行数
    sample_rows: int = 5  # sample_data 上限
    sample_values: int = 3  # ColumnInfo.sample_values 上限
    max_workers: int = 4  # 列単位並列度
    stats_chunk_size: int = 256  # 統計 fold のチャンクサイズ


@dataclass(frozen=True)
class LoaderSettings:
    """Relational store / cache settings."""
    database: str = ":memory:"  # 既定はプロセス内のみ (揮発)
    batch_size: int = 1000
    cache_capacity: int = 10
    cache_ttl_seconds: float = 1800.0


@dataclass(frozen=True)
class IngestConfig:
    """Root configuration object."""
    analysis: AnalysisSettings = field(default_factory=AnalysisSettings)
    loader: LoaderSettings = field(default_factory=LoaderSettings)
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    logs_dir: Path = Path("./logs")
