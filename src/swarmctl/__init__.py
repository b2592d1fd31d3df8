"""swarmctl - read-only Docker Swarm CLI"""

__version__ = "0.1.0"
