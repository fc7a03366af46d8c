"""
input 모듈 - 녹화 데이터 로드
"""

from .data_loader import RecordingLoader

__all__ = ['RecordingLoader']
