from .auth import User
from .catalog import SkuSequence
from .rates import WorkerRate
from .orders import LocationOrder, ExtraOrder, RemarkCarry, MainTableRow
from .submissions import Submission, SubmissionLine

__all__ = [
    'User',
    'SkuSequence',
    'WorkerRate',
    'LocationOrder', 'ExtraOrder', 'RemarkCarry', 'MainTableRow',
    'Submission', 'SubmissionLine',
]
