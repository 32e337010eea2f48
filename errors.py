class FotoFlowError(Exception):
    """Base class for application errors"""


class WorkflowStateError(FotoFlowError):
    """Operation is not valid in the collection workflow's current state"""


class RecordNotFoundError(FotoFlowError):
    """No user or photo with the given id"""
