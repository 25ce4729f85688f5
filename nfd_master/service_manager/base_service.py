from abc import ABC, abstractmethod


class BaseService(ABC):
    """Long-running part of the master, started and stopped by ServiceManager."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def start(self):
        """Raising aborts startup."""

    @abstractmethod
    async def stop(self):
        ...
