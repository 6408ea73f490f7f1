"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
ChatSession 在边界处统一吸收 Provider 类错误，只有配置错误与
调用契约错误会继续向上抛出。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "MISSING_API_KEY"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 provider、attempts 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(BusinessError):
    """Provider 返回非 2xx/429 错误，或响应体无法解析时抛出。"""


class RateLimitError(BusinessError):
    """Provider 限流错误，由重试策略负责退避。"""


class ConfigurationError(BusinessError):
    """配置校验失败（如缺少凭证），在构造阶段直接抛出。"""


class RequestContractError(BusinessError, TypeError):
    """请求改写层收到无法识别的输入形态。

    属于编程错误，不参与重试，也不会被 ChatSession 吸收。
    """

    def __init__(self, message: str, **extra):
        super().__init__(code="INVALID_REQUEST_SHAPE", message=message, http_status=500, **extra)


# 重试策略只针对这几类错误
ProviderError = (NetworkError, RateLimitError, ApiError)
