"""Wire encoders for exported metrics and logs."""

from pizzascope.core.encoding.loki import encode_streams
from pizzascope.core.encoding.otlp import encode_metrics

__all__ = ["encode_metrics", "encode_streams"]
