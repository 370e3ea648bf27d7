from .base import SampleSource
from .file import FileSource
from .mqtt import MqttSource
from .stdin import StdinSource
from .factory import source_factory

__all__ = ["FileSource", "MqttSource", "SampleSource", "StdinSource", "source_factory"]
