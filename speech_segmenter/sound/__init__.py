"""Sound subsystem - framing, features, thresholding and segmentation."""
from speech_segmenter.sound.FrameAssembler import FrameAssembler
from speech_segmenter.sound.AdaptiveThreshold import AdaptiveThreshold
from speech_segmenter.sound.Deadline import Deadline
from speech_segmenter.sound.FileAudioSource import FileAudioSource
from speech_segmenter.sound.VoiceActivityDetector import VoiceActivityDetector

__all__ = ['FrameAssembler', 'AdaptiveThreshold', 'Deadline', 'FileAudioSource', 'VoiceActivityDetector']
