"""Azure OpenAI 请求改写层。

ChatCompletionsAPI 按 OpenAI 的默认约定构造请求（Bearer 认证、组织头），
Azure 部署则要求：

1. URL 上追加 api-version 查询参数；
2. 用 api-key 头携带凭证；
3. 不能出现 Authorization / OpenAI-Organization，否则请求会被拒绝。

AzureRequestRewriter 作为 httpx 的 request 事件钩子挂在 Client 上，
每个物理请求恰好经过一次；调用点因此不需要了解 Provider 细节。
"""

from typing import Optional, Tuple, Union

import httpx

from review_core.domain.exceptions import RequestContractError
from review_core.infrastructure.logging.logger import logger
from review_core.providers.registry import AZURE_CONFIG, ProviderConfig


REDACTED = "***"

UrlLike = Union[str, httpx.URL]


class AzureRequestRewriter:
    """把通用的 chat/completions 请求改写为 Azure 认证约定。

    头部统一使用 httpx.Headers，普通 dict 等旧式容器视为调用契约错误。
    """

    def __init__(
        self,
        api_key: str,
        api_version: Optional[str] = None,
        provider: ProviderConfig = AZURE_CONFIG,
    ):
        self._api_key = api_key
        self._provider = provider
        self._api_version = api_version or provider.api_version

    @property
    def api_version(self) -> str:
        return self._api_version

    def __call__(self, request: httpx.Request) -> None:
        """httpx 事件钩子入口。"""

        self.rewrite(request)

    def rewrite(
        self,
        target: Union[UrlLike, httpx.Request],
        headers: Optional[httpx.Headers] = None,
    ) -> Union[httpx.Request, Tuple[httpx.URL, httpx.Headers]]:
        """改写一个请求。

        - target 为 URL（str / httpx.URL）时，返回改写后的 (url, headers)。
        - target 为 httpx.Request 时，原地修改并返回同一个对象。
        - 其他形态直接抛出 RequestContractError。
        """

        if isinstance(target, httpx.Request):
            if headers is not None:
                raise RequestContractError("headers must not be passed alongside an httpx.Request")
            target.url = self._with_api_version(target.url)
            self._apply_headers(target.headers)
            self._log(target.url, target.headers)
            return target

        if isinstance(target, (str, httpx.URL)):
            if headers is None:
                headers = httpx.Headers()
            elif not isinstance(headers, httpx.Headers):
                raise RequestContractError(
                    f"headers must be httpx.Headers, got {type(headers).__name__}",
                )
            url = self._with_api_version(httpx.URL(target))
            self._apply_headers(headers)
            self._log(url, headers)
            return url, headers

        raise RequestContractError(
            f"Invalid input type for request rewriter: {type(target).__name__}",
        )

    def _with_api_version(self, url: httpx.URL) -> httpx.URL:
        return url.copy_add_param("api-version", self._api_version)

    def _apply_headers(self, headers: httpx.Headers) -> None:
        headers[self._provider.api_key_header] = self._api_key
        for name in self._provider.stripped_headers:
            # httpx.Headers 的 pop 大小写不敏感
            headers.pop(name, None)

    def _log(self, url: httpx.URL, headers: httpx.Headers) -> None:
        visible = {
            k: (REDACTED if k.lower() == self._provider.api_key_header.lower() else v)
            for k, v in headers.items()
        }
        logger.debug(
            "Sending request",
            extra={"extra": {"url": str(url), "headers": visible}},
        )
