"""LLM Provider 集成层。

该包下的模块负责：
- 定义传输层抽象接口 (base)。
- 维护模型 token 预算与 Provider 认证约定 (registry)。
- 提供 chat/completions 实现 (openai_client) 与 Azure 请求改写 (request_rewriter)。
"""
