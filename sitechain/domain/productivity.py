from types import MappingProxyType
from typing import Dict, Mapping, Optional

# Man-hours per unit of work, keyed by price-database code.
DEFAULT_PRODUCTIVITY_RATES: Dict[str, float] = {
    # Earthworks (m3)
    "MTT010": 0.3, "MTT020": 0.8, "MTR010": 0.5,
    # Foundations (m3)
    "FSS010": 6.0, "FSS020": 5.5, "FLE010": 3.0, "FPC010": 4.0,
    # Structure (m3, m2)
    "SBP010": 10, "SBV010": 9, "SBL010": 2.5, "SBL020": 1.5, "SBE010": 5, "SBM010": 3,
    "SMA010": 0.08,  # kg
    # Masonry (m2)
    "ABT010": 1.0, "ABT020": 0.8, "ABB010": 1.1,
    # Roofing (m2)
    "CTM010": 0.8, "CTP010": 1.2, "CTZ010": 0.5,
    # Waterproofing (m2)
    "IMP010": 0.4, "IMP020": 0.3,
    # External finishes (m2)
    "REE010": 0.8, "REP010": 1.5, "REP020": 2.0, "ZFF120": 0.9, "ZFF150": 1.0,
    # Internal finishes (m2)
    "RIE010": 0.5, "RIC010": 1.2, "RIG010": 0.8,
    # Flooring (m2)
    "PAC010": 1.0, "PAM010": 0.6, "PAV010": 0.5, "PAB010": 0.4,
    # Ceilings (m2)
    "TFG010": 0.7,
    # Windows (m2)
    "CXA010": 2.5, "CXP010": 2.2, "ZBL010": 3.0,
    # Doors (Ud)
    "PEX010": 4, "CPI010": 3,
    # Painting (m2)
    "PPI010": 0.25, "PPE010": 0.35, "PPT010": 0.3,
    # Plumbing (Ud)
    "IFA010": 40, "ISS010": 60, "ISV010": 0.8,
    "LSB010": 4, "LSC010": 3.5, "LSS010": 2.5, "LSL010": 2, "LCZ010": 5,
    # Electrical (Ud)
    "IEI015": 80, "IEP010": 8, "IEV010": 12,
    # Telecom (Ud)
    "ILA010": 16, "ILA020": 8,
    # Gas (Ud)
    "IGI010": 4,
    # HVAC (Ud)
    "IVC010": 24, "IVV010": 4,
    # Fire safety (Ud)
    "IOD010": 16, "IOD102": 1.5, "IOA010": 1.5, "IOX010": 0.5, "IOB010": 8,
    # Accessibility (m, Ud)
    "HAR010": 6, "SAE010": 120,
    # Acoustics (m2, test)
    "NBB010": 1.0, "NBB020": 0.8, "XRA010": 16,
    # Testing
    "XEE010": 8, "XEC010": 4,
    # Other
    "EES010": 40, "EES020": 0.5,
    "DDA010": 0.6, "DDC010": 0.8, "DDP010": 0.7,
    "SMG010": 2.5, "CPA010": 8,
    "AEP010": 0.8, "AEM010": 2,
    "GRA010": 16,
}

DEFAULT_PRODUCTIVITY = 2.0


class ProductivityTable:
    """Read-only lookup of man-hours per unit by price code."""

    def __init__(
        self,
        rates: Optional[Mapping[str, float]] = None,
        default_rate: float = DEFAULT_PRODUCTIVITY,
    ):
        if default_rate <= 0:
            raise ValueError("Default productivity must be positive")
        self._rates = MappingProxyType(
            dict(DEFAULT_PRODUCTIVITY_RATES if rates is None else rates)
        )
        self._default_rate = default_rate

    @property
    def default_rate(self) -> float:
        return self._default_rate

    def rate_for(self, price_code: Optional[str]) -> float:
        if not price_code:
            return self._default_rate
        return self._rates.get(price_code, self._default_rate)

    def knows(self, price_code: Optional[str]) -> bool:
        return bool(price_code) and price_code in self._rates

    def __len__(self):
        return len(self._rates)
