class DeployError(Exception):
    """Raised when a deployment step cannot continue"""
