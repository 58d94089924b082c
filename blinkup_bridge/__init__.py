"""
BlinkUp Bridge - drive BlinkUp device onboarding from a scripted app layer.

Validates invocation arguments, resolves the provisioning plan ID, runs the
two-phase token/setup flow against the BlinkUp SDK controller and reports
exactly one result per invocation.
"""

__version__ = "0.1.0"
__author__ = "BlinkUp Bridge Contributors"
