from review_core.agents.chat_session import ChatSession, create_session, create_transport

__all__ = ["ChatSession", "create_session", "create_transport"]
