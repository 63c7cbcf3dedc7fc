"""
Centralized test suite for the marketplace returns service.

Test Organization:
- integration/ - workflow, data access and API tests against the database
- unit/ - pure functions (tracking codec, amount parsing, state machine)
"""
