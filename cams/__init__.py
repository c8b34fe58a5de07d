"""CAMS admin backend package.

To build the Flask app:
    from cams.flask_app import create_app

To use the reconcilers directly (inside an app context):
    from cams.core import migration_service, role_assignment
"""
# Note: We don't import flask_app by default so CLI scripts can import
# cams.core without building the app
