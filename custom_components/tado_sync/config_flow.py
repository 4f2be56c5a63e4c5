"""Config flow for Tado Sync integration."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

import voluptuous as vol

from homeassistant.components import webhook
from homeassistant.config_entries import (
    SOURCE_REAUTH,
    ConfigEntry,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.const import CONF_WEBHOOK_ID
from homeassistant.core import callback
from homeassistant.helpers import config_entry_oauth2_flow
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import TadoApiClient, TadoApiError, TadoAuthError, TokenAuth
from .const import (
    CONF_DEVICES,
    CONF_FALLBACK,
    CONF_HOME_ID,
    CONF_HOME_NAME,
    CONF_SCAN_INTERVAL_SECONDS,
    CONF_TIMER_DURATION,
    CONST_OVERLAY_TADO_DEFAULT,
    CONST_OVERLAY_TADO_OPTIONS,
    DEFAULT_SCAN_INTERVAL_SECONDS,
    DEFAULT_TIMER_DURATION,
    DOMAIN,
    OAUTH2_SCOPES,
)
from .pairing import async_discover_devices

_LOGGER = logging.getLogger(__name__)


class OAuth2FlowHandler(
    config_entry_oauth2_flow.AbstractOAuth2FlowHandler, domain=DOMAIN
):
    """Handle a config flow for Tado Sync."""

    DOMAIN = DOMAIN
    VERSION = 1

    @property
    def logger(self) -> logging.Logger:
        return _LOGGER

    @property
    def extra_authorize_data(self) -> dict[str, Any]:
        return {"scope": " ".join(OAUTH2_SCOPES)}

    async def async_step_reauth(
        self, entry_data: Mapping[str, Any]
    ) -> ConfigFlowResult:
        """Perform reauth when the token was rejected."""
        return await self.async_step_reauth_confirm()

    async def async_step_reauth_confirm(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Confirm reauth."""
        if user_input is None:
            return self.async_show_form(step_id="reauth_confirm")
        return await self.async_step_user()

    async def async_oauth_create_entry(self, data: dict[str, Any]) -> ConfigFlowResult:
        """Pair the devices of the first home of the account."""
        api = TadoApiClient(
            async_get_clientsession(self.hass),
            TokenAuth(data["token"]["access_token"]),
        )
        try:
            tado_me = await api.async_get_me()
        except TadoAuthError:
            _LOGGER.exception("Tado rejected the new token")
            return self.async_abort(reason="invalid_auth")
        except TadoApiError as ex:
            _LOGGER.warning("Tado get_me failed: %s", ex)
            return self.async_abort(reason="cannot_connect")

        homes = (tado_me or {}).get("homes") or []
        if not homes:
            _LOGGER.error("Tado get_me returned no homes")
            return self.async_abort(reason="no_homes")
        home = homes[0]
        home_id = str(home["id"])
        home_name = home.get("name") or home_id
        _LOGGER.debug("Tado home selected: id=%s name=%s", home_id, home_name)

        await self.async_set_unique_id(home_id)
        if self.source == SOURCE_REAUTH:
            entry = self.hass.config_entries.async_get_entry(self.context["entry_id"])
            if entry is None:
                return self.async_abort(reason="reauth_failed")
            self.hass.config_entries.async_update_entry(
                entry, data={**entry.data, **data}
            )
            await self.hass.config_entries.async_reload(entry.entry_id)
            return self.async_abort(reason="reauth_successful")
        self._abort_if_unique_id_configured()

        try:
            devices = await async_discover_devices(api, home)
        except TadoApiError as ex:
            _LOGGER.warning("Tado device discovery failed: %s", ex)
            return self.async_abort(reason="cannot_connect")
        if not devices:
            return self.async_abort(reason="no_devices")

        return self.async_create_entry(
            title=home_name,
            data={
                **data,
                CONF_HOME_ID: home_id,
                CONF_HOME_NAME: home_name,
                CONF_DEVICES: [device.as_dict() for device in devices],
                CONF_WEBHOOK_ID: webhook.async_generate_id(),
            },
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: ConfigEntry,
    ) -> OptionsFlowHandler:
        """Get the options flow for this handler."""
        return OptionsFlowHandler()


class OptionsFlowHandler(OptionsFlow):
    """Handle an option flow for Tado Sync."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle options flow."""
        if user_input is not None:
            options = dict(self.config_entry.options)
            options.update(user_input)
            return self.async_create_entry(data=options)

        options = self.config_entry.options
        data_schema = vol.Schema(
            {
                vol.Optional(
                    CONF_FALLBACK,
                    default=options.get(CONF_FALLBACK, CONST_OVERLAY_TADO_DEFAULT),
                ): vol.In(CONST_OVERLAY_TADO_OPTIONS),
                vol.Optional(
                    CONF_TIMER_DURATION,
                    default=options.get(CONF_TIMER_DURATION, DEFAULT_TIMER_DURATION),
                ): vol.All(vol.Coerce(int), vol.Range(min=1, max=24 * 60)),
                vol.Optional(
                    CONF_SCAN_INTERVAL_SECONDS,
                    default=options.get(
                        CONF_SCAN_INTERVAL_SECONDS, DEFAULT_SCAN_INTERVAL_SECONDS
                    ),
                ): vol.All(vol.Coerce(int), vol.Range(min=1)),
            }
        )
        return self.async_show_form(step_id="init", data_schema=data_schema)
