class WeightConverter:
    """Utility for converting between kg/lb and km/miles.

    Weights and distances are stored in kg and km.
    """

    KG_TO_LB = 2.2046226218
    LB_TO_KG = 0.45359237
    KM_TO_MILES = 0.621371
    MILES_TO_KM = 1.609344

    @staticmethod
    def kg_to_lb(kg: float) -> float:
        """Convert to pounds rounded to the nearest half pound."""
        return round(kg * WeightConverter.KG_TO_LB / 0.5) * 0.5

    @staticmethod
    def lb_to_kg(lb: float) -> float:
        return round(lb * WeightConverter.LB_TO_KG, 2)

    @staticmethod
    def km_to_miles(km: float) -> float:
        return round(km * WeightConverter.KM_TO_MILES, 2)

    @staticmethod
    def miles_to_km(miles: float) -> float:
        return round(miles * WeightConverter.MILES_TO_KM, 2)
