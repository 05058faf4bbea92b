"""
Streaming inserts of file analysis records into BigQuery.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from google.cloud import bigquery

from shared_libs.config.all_config import BigQueryConfig, bigquery_config

from .schemas import FileAnalysisRecord

logger = logging.getLogger(__name__)


class SinkInsertError(RuntimeError):
    """The table rejected one or more rows."""

    def __init__(self, table_id: str, errors: List[Dict[str, Any]]):
        super().__init__(f"Insert into {table_id} failed: {errors}")
        self.table_id = table_id
        self.errors = errors


class BigQuerySink:
    """Writes one row per processed file to the configured table."""

    def __init__(self, config: BigQueryConfig = bigquery_config, client: Optional[bigquery.Client] = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> bigquery.Client:
        """Lazy initialization of the BigQuery client."""
        if self._client is None:
            if self.config.project_id:
                self._client = bigquery.Client(project=self.config.project_id)
            else:
                self._client = bigquery.Client()
        return self._client

    @property
    def table_id(self) -> str:
        return self.config.full_table_id

    def to_row(self, record: FileAnalysisRecord) -> Dict[str, Any]:
        row = record.model_dump()
        if self.config.top_words_as_json:
            row["top_10_words"] = json.dumps(row["top_10_words"])
        return row

    def insert(self, record: FileAnalysisRecord, row_id: Optional[str] = None) -> None:
        """
        Insert a record with the streaming API.

        Args:
            record: Validated row
            row_id: Insert id used by BigQuery for best-effort de-duplication
                of retried inserts

        Raises:
            SinkInsertError: If BigQuery reports row errors.
        """
        row = self.to_row(record)
        row_ids = [row_id] if row_id else None
        errors = self.client.insert_rows_json(self.table_id, [row], row_ids=row_ids)
        if errors:
            logger.error(f"BigQuery rejected row for {record.bucket}/{record.filename}: {errors}")
            raise SinkInsertError(self.table_id, errors)
        logger.info(f"Inserted analysis of {record.bucket}/{record.filename} into {self.table_id}")
