"""Infrastructure adapters: repositories, action collaborators, composition root."""
