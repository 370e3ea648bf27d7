from typing import Any, Dict, Optional

from .base import SampleSource
from .file import FileSource
from .mqtt import MqttSource
from .stdin import StdinSource


def source_factory(cfg: Dict[str, Any], mqtt_cfg: Optional[Dict[str, Any]] = None) -> SampleSource:
    kind = cfg.get('source', 'stdin')
    if kind == 'stdin':
        return StdinSource()
    if kind == 'file':
        if not cfg.get('path'):
            raise ValueError("ingest.path must be set when ingest.source is 'file'")
        return FileSource(cfg['path'])
    if kind == 'mqtt':
        mqtt_cfg = mqtt_cfg or {}
        for key in ('host', 'topic_name'):
            if not mqtt_cfg.get(key):
                raise ValueError(f"mqtt.{key} must be set when ingest.source is 'mqtt'")
        return MqttSource(mqtt_cfg)
    raise ValueError(f"Unknown ingest source: {kind}")
