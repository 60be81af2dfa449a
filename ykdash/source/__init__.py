from ykdash.source.ykman import CodeSource, YkmanCodeSource


__all__ = ["CodeSource", "YkmanCodeSource"]
