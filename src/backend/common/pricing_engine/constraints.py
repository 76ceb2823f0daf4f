"""Constraint and service identifiers shared by detection, conditions and rule matching.

Identifiers are the stable keys clients submit; display names are for diagnostics only.
"""

from __future__ import annotations

# Building / access constraints
DIFFICULT_STAIRS = "difficult_stairs"
NARROW_CORRIDORS = "narrow_corridors"
INDIRECT_EXIT = "indirect_exit"
COMPLEX_MULTILEVEL_ACCESS = "complex_multilevel_access"
LONG_CARRYING_DISTANCE = "long_carrying_distance"
ELEVATOR_UNAVAILABLE = "elevator_unavailable"
ELEVATOR_UNSUITABLE_SIZE = "elevator_unsuitable_size"
ELEVATOR_FORBIDDEN_MOVING = "elevator_forbidden_moving"

# Vehicle access
PEDESTRIAN_ZONE = "pedestrian_zone"
NARROW_INACCESSIBLE_STREET = "narrow_inaccessible_street"
DIFFICULT_PARKING = "difficult_parking"
LIMITED_PARKING = "limited_parking"
COMPLEX_TRAFFIC = "complex_traffic"

# Security / administrative
ACCESS_CONTROL = "access_control"
ADMINISTRATIVE_PERMIT = "administrative_permit"
TIME_RESTRICTIONS = "time_restrictions"
FRAGILE_FLOOR = "fragile_floor"

# Equipment
FURNITURE_LIFT_REQUIRED = "furniture_lift_required"

# Handling / services
BULKY_FURNITURE = "bulky_furniture"
HEAVY_ITEMS = "heavy_items"
FURNITURE_DISASSEMBLY = "furniture_disassembly"
FURNITURE_REASSEMBLY = "furniture_reassembly"
TRANSPORT_PIANO = "transport_piano"
PROFESSIONAL_PACKING_DEPARTURE = "professional_packing_departure"
PROFESSIONAL_UNPACKING_ARRIVAL = "professional_unpacking_arrival"
PACKING_SUPPLIES = "packing_supplies"
ARTWORK_PACKING = "artwork_packing"
FRAGILE_VALUABLE_ITEMS = "fragile_valuable_items"
ADDITIONAL_INSURANCE = "additional_insurance"
PHOTO_INVENTORY = "photo_inventory"
TEMPORARY_STORAGE_SERVICE = "temporary_storage_service"
POST_MOVE_CLEANING = "post_move_cleaning"
ADMINISTRATIVE_MANAGEMENT = "administrative_management"
ANIMAL_TRANSPORT = "animal_transport"

# Everything a furniture lift physically resolves; never billed on top of the lift fee.
SUBSUMABLE_BY_LIFT: frozenset[str] = frozenset(
    {
        DIFFICULT_STAIRS,
        NARROW_CORRIDORS,
        BULKY_FURNITURE,
        HEAVY_ITEMS,
        INDIRECT_EXIT,
        COMPLEX_MULTILEVEL_ACCESS,
        LONG_CARRYING_DISTANCE,
        ELEVATOR_UNAVAILABLE,
        ELEVATOR_UNSUITABLE_SIZE,
        ELEVATOR_FORBIDDEN_MOVING,
    }
)

# Declaring any of these is reason enough to warn the client a lift may be needed.
CRITICAL_CONSTRAINTS_REQUIRING_LIFT: frozenset[str] = frozenset(
    {
        DIFFICULT_STAIRS,
        NARROW_CORRIDORS,
        BULKY_FURNITURE,
        HEAVY_ITEMS,
        INDIRECT_EXIT,
    }
)

ELEVATOR_FAILURE_CONSTRAINTS: tuple[str, ...] = (
    ELEVATOR_UNAVAILABLE,
    ELEVATOR_UNSUITABLE_SIZE,
    ELEVATOR_FORBIDDEN_MOVING,
)

AUTOMATIC_REQUIREMENTS: tuple[str, ...] = (FURNITURE_LIFT_REQUIRED, LONG_CARRYING_DISTANCE)

DISPLAY_NAMES: dict[str, str] = {
    DIFFICULT_STAIRS: "Escalier difficile",
    NARROW_CORRIDORS: "Couloirs étroits",
    INDIRECT_EXIT: "Sortie indirecte",
    COMPLEX_MULTILEVEL_ACCESS: "Accès multi-niveaux complexe",
    LONG_CARRYING_DISTANCE: "Distance de portage longue",
    ELEVATOR_UNAVAILABLE: "Ascenseur indisponible",
    ELEVATOR_UNSUITABLE_SIZE: "Ascenseur inadapté",
    ELEVATOR_FORBIDDEN_MOVING: "Ascenseur interdit au déménagement",
    PEDESTRIAN_ZONE: "Zone piétonne",
    NARROW_INACCESSIBLE_STREET: "Rue étroite ou inaccessible",
    DIFFICULT_PARKING: "Stationnement difficile",
    LIMITED_PARKING: "Stationnement limité",
    COMPLEX_TRAFFIC: "Circulation complexe",
    ACCESS_CONTROL: "Contrôle d'accès strict",
    ADMINISTRATIVE_PERMIT: "Autorisation administrative",
    TIME_RESTRICTIONS: "Restrictions horaires",
    FRAGILE_FLOOR: "Sol fragile",
    FURNITURE_LIFT_REQUIRED: "Monte-meuble",
    BULKY_FURNITURE: "Meubles encombrants",
    HEAVY_ITEMS: "Objets très lourds",
    FURNITURE_DISASSEMBLY: "Démontage de meubles",
    FURNITURE_REASSEMBLY: "Remontage de meubles",
    TRANSPORT_PIANO: "Transport de piano",
    PROFESSIONAL_PACKING_DEPARTURE: "Emballage professionnel départ",
    PROFESSIONAL_UNPACKING_ARRIVAL: "Déballage professionnel arrivée",
    PACKING_SUPPLIES: "Fournitures d'emballage",
    ARTWORK_PACKING: "Emballage œuvres d'art",
    FRAGILE_VALUABLE_ITEMS: "Objets fragiles ou de valeur",
    ADDITIONAL_INSURANCE: "Assurance complémentaire",
    PHOTO_INVENTORY: "Inventaire photo",
    TEMPORARY_STORAGE_SERVICE: "Stockage temporaire",
    POST_MOVE_CLEANING: "Nettoyage après déménagement",
    ADMINISTRATIVE_MANAGEMENT: "Gestion administrative",
    ANIMAL_TRANSPORT: "Transport d'animaux",
}


def display_name(identifier: str) -> str:
    return DISPLAY_NAMES.get(identifier, identifier)
