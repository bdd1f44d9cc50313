from flask import current_app


def get_journal_service():
    return current_app.extensions["journal_service"]


def get_identity_provider():
    return current_app.extensions["identity_provider"]
