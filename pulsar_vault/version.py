"""Pulsar Vault Meta information.
   Pulsar Vault keeps user-supplied LLM API keys encrypted at rest.
"""
__title__ = 'pulsar_vault'
__description__ = (
   'Pulsar Vault keeps user-supplied LLM API keys encrypted '
   'at rest for the PulsarTeam learning platform.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2026 PulsarTeam'
__author__ = 'PulsarTeam'
__author_email__ = 'dev@pulsarteam.io'
__license__ = 'Apache-2.0'
