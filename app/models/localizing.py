"""Lookup helpers for models that own localized attributes."""

from typing import Any, List, Optional, Union

from app.models.locale import Locale


class LocalizingModel:
    """
    Mixin for models with a ``localized_attributes`` collection.

    A lookup for a locale that has no value falls back to the default
    attribute (the one written without a locale suffix in the meta block).
    """

    def localized_attributes_for(self, attr: str) -> List[Any]:
        return [la for la in self.localized_attributes if la.attribute_key == attr]

    def localized_attribute_for(
        self, attr: str, locale: Optional[Union[Locale, str]] = None
    ) -> Optional[Any]:
        candidates = self.localized_attributes_for(attr)
        if locale is not None:
            code = locale if isinstance(locale, str) else locale.code
            for la in candidates:
                if la.locale is not None and la.locale.code == code:
                    return la
        for la in candidates:
            if la.attribute_default:
                return la
        return None

    def localized_value_for(
        self, attr: str, locale: Optional[Union[Locale, str]] = None
    ) -> Optional[str]:
        la = self.localized_attribute_for(attr, locale)
        return None if la is None else la.attribute_value

    def default_localized_value_for(self, attr: str) -> Optional[str]:
        return self.localized_value_for(attr)

    def available_locale_codes(self) -> List[str]:
        codes = []
        for la in self.localized_attributes:
            if la.locale is not None and la.locale.code not in codes:
                codes.append(la.locale.code)
        return codes
