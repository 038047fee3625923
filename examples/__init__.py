"""
Multisig SDK Examples.

- multisig.py: Offline walkthrough of a 2-of-3 co-signing flow
- common.py: Shared configuration read from environment variables

Run an example from the repository root::

    python -m examples.multisig
"""
