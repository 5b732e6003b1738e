"""Taskboard application: context wiring and the command-line client.

Every entry point builds a TaskboardContext, which owns one session's
SessionStore, RemoteGateway, AuthSessionManager, TaskCacheCoordinator and
MutationPipeline.
"""
