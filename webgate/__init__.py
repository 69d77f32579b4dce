"""
Web Model API Gateway
=====================

OpenAI-compatible and Google-generative-style HTTP APIs served by driving
cookie-authenticated web chat models (Gemini Web) or a hosted
OpenAI-compatible API.

Components:
    - providers.webchat: Gemini web RPC client (auth, payloads, decoding)
    - providers: provider contract and registry
    - gateway: session slots, model registry, protocol routers, SSE
    - server: runtime controller owning the HTTP listener

Usage:
    from webgate.server.runtime import create_runtime_controller

    controller = create_runtime_controller()
    await controller.bootstrap()
    await controller.start_default_mode()
"""

__version__ = "1.0.0"
