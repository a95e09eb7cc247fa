"""
clawdeploy
Deployment automation for the OpenClaw agent gateway and the Moltbook
agent social network on OpenShift or Kubernetes.
"""

__version__ = "1.0.0"
__author__ = "OpenClaw Deploy"
__description__ = "Provision OpenClaw + Moltbook, register agents and wire optional A2A add-ons"
