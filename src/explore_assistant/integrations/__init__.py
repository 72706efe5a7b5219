"""Concrete collaborators: LLM providers, Looker API, local storage, mocks."""
