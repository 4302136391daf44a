from evaluator.codecs.archive_transcoder import ArchiveTranscoder
from evaluator.codecs.stream_demultiplexer import StreamDemultiplexer

__all__ = [
    "ArchiveTranscoder",
    "StreamDemultiplexer",
]
