from fastapi import Request

from bank import QuestionBank


def get_bank(request: Request) -> QuestionBank:
    """The question bank created at startup (see main.py)."""
    return request.app.state.bank
