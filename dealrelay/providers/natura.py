from __future__ import annotations

from typing import Any

from dealrelay.services.url_tools import UTM_PARAMS, replace_params

CONSULTANT_PARAM = "consultoria"


class NaturaProvider:
    name = "natura"

    def can_handle(self, url: str) -> bool:
        return "natura.com.br" in (url or "").lower()

    async def rewrite(self, url: str, config: Any) -> str | None:
        consultant = config.strip() if isinstance(config, str) else ""
        if not consultant:
            return None
        try:
            return replace_params(
                url,
                remove=(CONSULTANT_PARAM, *UTM_PARAMS),
                set_params={CONSULTANT_PARAM: consultant},
            )
        except ValueError:
            return None
