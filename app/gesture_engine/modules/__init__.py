"""
Modules for the Motion Analyzer gesture engine.

Template store, recognizer, motion assessor and the background match worker.
"""

from .template_store import DirectoryTemplateSource, TemplateSource, template_from_dict, template_to_dict
from .recognizer import GestureRecognizer, LoadReport
from .motion_assessor import JointStatus, MotionAssessor
from .match_worker import MatchOutcome, MatchWorker

__all__ = [
    'DirectoryTemplateSource', 'TemplateSource', 'template_from_dict', 'template_to_dict',
    'GestureRecognizer', 'LoadReport',
    'JointStatus', 'MotionAssessor',
    'MatchOutcome', 'MatchWorker',
]
