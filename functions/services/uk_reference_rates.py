"""
UK construction reference rates for SiteQuote.

National base prices (2024 market averages, VAT included) for tool hire,
materials, aggregates and labour, plus the regional and seasonal
adjustment tables the pricing engine applies on top of them.

Sources:
- Tool hire: HSS Hire / Brandon Hire / local hire shop averages
- Materials: Screwfix, B&Q, Travis Perkins average prices
- Labour: ONS earnings data and trade recruitment agencies
- Regional variation: ONS regional price indices
"""

from typing import Dict, List, Any


# =============================================================================
# Regional adjustment
# =============================================================================

NATIONAL_REGION = "UK"

# Multiplier vs national average. Unknown regions resolve to 1.0.
REGION_MULTIPLIERS: Dict[str, float] = {
    "London": 1.30,
    "South East": 1.15,
    "East of England": 1.10,
    "South West": 1.05,
    "West Midlands": 1.00,
    "East Midlands": 0.97,
    "Yorkshire": 0.92,
    "North West": 0.90,
    "North East": 0.85,
    "Scotland": 0.95,
    "Wales": 0.88,
    "Northern Ireland": 0.82,
}

# City -> region. Checked before region names when resolving a location;
# a region's namesake city goes last so boroughs win ("Camden, London").
REGION_CITIES: Dict[str, List[str]] = {
    "London": ["Westminster", "Camden", "Islington", "Croydon", "Hackney", "London"],
    "South East": ["Brighton", "Canterbury", "Oxford", "Reading", "Guildford", "Southampton", "Portsmouth", "Basingstoke"],
    "East of England": ["Cambridge", "Norwich", "Ipswich", "Luton", "Chelmsford"],
    "South West": ["Bristol", "Bath", "Plymouth", "Exeter", "Bournemouth"],
    "West Midlands": ["Birmingham", "Coventry", "Wolverhampton", "Solihull", "Stoke"],
    "East Midlands": ["Nottingham", "Leicester", "Derby", "Lincoln"],
    "Yorkshire": ["Leeds", "Sheffield", "Bradford", "York", "Hull"],
    "North West": ["Manchester", "Liverpool", "Preston", "Blackpool", "Bolton"],
    "North East": ["Newcastle", "Sunderland", "Middlesbrough", "Durham"],
    "Scotland": ["Edinburgh", "Glasgow", "Aberdeen", "Dundee", "Inverness"],
    "Wales": ["Cardiff", "Swansea", "Newport", "Wrexham"],
    "Northern Ireland": ["Belfast", "Londonderry", "Derry", "Lisburn", "Newry"],
}

# Alternative spellings users type for a region.
REGION_ALIASES: Dict[str, str] = {
    "greater london": "London",
    "yorkshire and the humber": "Yorkshire",
    "north-west": "North West",
    "north-east": "North East",
    "south-east": "South East",
    "south-west": "South West",
    "east anglia": "East of England",
    "midlands": "West Midlands",
}


# =============================================================================
# Seasonal and demand adjustment
# =============================================================================

# Calendar month (1-12) -> multiplier. Spring/summer construction season is dearer.
SEASONAL_MULTIPLIERS: Dict[int, float] = {
    1: 0.95, 2: 0.95, 3: 1.00,
    4: 1.10, 5: 1.10, 6: 1.10, 7: 1.10, 8: 1.10, 9: 1.10,
    10: 1.00, 11: 1.00, 12: 0.95,
}

# Project types with constrained trade availability; labour only.
HIGH_DEMAND_KEYWORDS = ("extension", "conversion", "loft")
HIGH_DEMAND_MULTIPLIER = 1.15


# =============================================================================
# Tool hire (per day / per week)
# =============================================================================

TOOL_HIRE_RATES: List[Dict[str, Any]] = [
    {"id": "drill_sds_plus", "name": "SDS Plus Drill", "category": "power_tools",
     "dailyRate": 28.0, "weeklyRate": 112.0,
     "alternatives": ["Cordless hammer drill", "Standard drill with masonry bits"]},
    {"id": "angle_grinder_9inch", "name": "Angle Grinder", "category": "power_tools",
     "dailyRate": 22.0, "weeklyRate": 88.0,
     "alternatives": ["4.5\" angle grinder", "Cut-off saw"]},
    {"id": "circular_saw_230mm", "name": "Circular Saw", "category": "power_tools",
     "dailyRate": 25.0, "weeklyRate": 100.0},
    {"id": "reciprocating_saw", "name": "Reciprocating Saw", "category": "power_tools",
     "dailyRate": 20.0, "weeklyRate": 80.0},
    {"id": "planer_electric", "name": "Electric Planer", "category": "power_tools",
     "dailyRate": 18.0, "weeklyRate": 72.0, "availability": "medium"},
    {"id": "concrete_mixer_240l", "name": "Concrete Mixer", "category": "heavy_machinery",
     "dailyRate": 45.0, "weeklyRate": 180.0},
    {"id": "mini_digger_1_5t", "name": "Mini Digger", "category": "heavy_machinery",
     "dailyRate": 185.0, "weeklyRate": 740.0, "availability": "medium",
     "alternatives": ["Hand digging", "Larger excavator"]},
    {"id": "scaffold_tower", "name": "Scaffold Tower", "category": "access",
     "dailyRate": 35.0, "weeklyRate": 140.0},
    {"id": "cherry_picker_12m", "name": "Cherry Picker", "category": "access",
     "dailyRate": 165.0, "weeklyRate": 660.0, "availability": "low"},
    {"id": "hand_tools_basic_set", "name": "Basic Hand Tools", "category": "hand_tools",
     "dailyRate": 15.0, "weeklyRate": 60.0},
    {"id": "safety_equipment_personal", "name": "Personal Safety Equipment", "category": "safety",
     "dailyRate": 12.0, "weeklyRate": 48.0},
]


# =============================================================================
# Materials
# =============================================================================

MATERIAL_PRICES: List[Dict[str, Any]] = [
    {"id": "cement_25kg", "name": "Cement", "category": "structural",
     "priceRange": {"min": 4.20, "max": 5.80, "average": 4.95}, "unit": "per 25kg bag", "wasteFactor": 0.05},
    {"id": "sand_building_bulk", "name": "Building Sand", "category": "structural",
     "priceRange": {"min": 45.0, "max": 65.0, "average": 55.0}, "unit": "per tonne", "wasteFactor": 0.10},
    {"id": "aggregate_20mm", "name": "Aggregate 20mm", "category": "structural",
     "priceRange": {"min": 48.0, "max": 68.0, "average": 58.0}, "unit": "per tonne", "wasteFactor": 0.05},
    {"id": "brick_common_engineering", "name": "Engineering Bricks", "category": "structural",
     "priceRange": {"min": 0.45, "max": 0.85, "average": 0.65}, "unit": "per brick", "wasteFactor": 0.05},
    {"id": "timber_2x4_treated", "name": "Treated Timber", "category": "structural",
     "priceRange": {"min": 4.50, "max": 7.20, "average": 5.85}, "unit": "per 2.4m length", "wasteFactor": 0.10},
    {"id": "plasterboard_12_5mm", "name": "Plasterboard", "category": "finishing",
     "priceRange": {"min": 8.50, "max": 12.0, "average": 10.25}, "unit": "per sheet", "wasteFactor": 0.10},
    {"id": "paint_emulsion_10l", "name": "Emulsion Paint", "category": "finishing",
     "priceRange": {"min": 35.0, "max": 65.0, "average": 48.0}, "unit": "per 10L tin", "wasteFactor": 0.05},
    {"id": "ceramic_tiles_m2", "name": "Ceramic Wall Tiles", "category": "finishing",
     "priceRange": {"min": 15.0, "max": 45.0, "average": 28.0}, "unit": "per m²", "wasteFactor": 0.10},
    {"id": "cable_twin_earth_2_5mm", "name": "Twin & Earth Cable", "category": "electrical",
     "priceRange": {"min": 1.85, "max": 2.45, "average": 2.15}, "unit": "per metre", "wasteFactor": 0.15},
    {"id": "socket_outlet_13a", "name": "13A Socket Outlet", "category": "electrical",
     "priceRange": {"min": 3.20, "max": 8.50, "average": 5.85}, "unit": "per unit", "wasteFactor": 0.05},
    {"id": "copper_pipe_15mm", "name": "Copper Pipe", "category": "plumbing",
     "priceRange": {"min": 4.20, "max": 6.80, "average": 5.50}, "unit": "per metre", "wasteFactor": 0.10},
    {"id": "radiator_double_panel", "name": "Double Panel Radiator", "category": "plumbing",
     "priceRange": {"min": 85.0, "max": 165.0, "average": 125.0}, "unit": "per unit", "wasteFactor": 0.02},
]


# =============================================================================
# Aggregates
# =============================================================================

AGGREGATE_RATES: List[Dict[str, Any]] = [
    {"id": "concrete_c25_ready_mix", "name": "Ready Mix Concrete C25", "type": "concrete",
     "pricePerCubicMetre": 125.0, "deliveryCharge": 85.0, "minimumOrder": 4},
    {"id": "concrete_c35_ready_mix", "name": "Ready Mix Concrete C35", "type": "concrete",
     "pricePerCubicMetre": 140.0, "deliveryCharge": 85.0, "minimumOrder": 4},
    {"id": "topsoil_screened", "name": "Screened Topsoil", "type": "soil",
     "pricePerTonne": 35.0, "deliveryCharge": 65.0, "minimumOrder": 5},
    {"id": "mot_type1_sub_base", "name": "MOT Type 1 Sub Base", "type": "stone",
     "pricePerTonne": 28.0, "deliveryCharge": 55.0, "minimumOrder": 8},
]


# =============================================================================
# Labour
# =============================================================================

LABOR_RATES: List[Dict[str, Any]] = [
    {"id": "general_labourer", "tradeType": "General Labourer", "skillLevel": "competent",
     "hourlyRate": {"min": 16.0, "max": 22.0, "average": 19.0},
     "dailyRate": {"min": 128.0, "max": 176.0, "average": 152.0}, "inDemand": False},
    {"id": "carpenter_skilled", "tradeType": "Carpenter", "skillLevel": "skilled",
     "hourlyRate": {"min": 25.0, "max": 40.0, "average": 32.5},
     "dailyRate": {"min": 200.0, "max": 320.0, "average": 260.0}, "inDemand": True},
    {"id": "electrician_qualified", "tradeType": "Electrician", "skillLevel": "expert",
     "hourlyRate": {"min": 35.0, "max": 55.0, "average": 45.0},
     "dailyRate": {"min": 280.0, "max": 440.0, "average": 360.0}, "inDemand": True},
    {"id": "plumber_qualified", "tradeType": "Plumber", "skillLevel": "expert",
     "hourlyRate": {"min": 30.0, "max": 50.0, "average": 40.0},
     "dailyRate": {"min": 240.0, "max": 400.0, "average": 320.0}, "inDemand": True},
    {"id": "bricklayer_skilled", "tradeType": "Bricklayer", "skillLevel": "skilled",
     "hourlyRate": {"min": 22.0, "max": 38.0, "average": 30.0},
     "dailyRate": {"min": 176.0, "max": 304.0, "average": 240.0}, "inDemand": True},
    {"id": "plasterer_skilled", "tradeType": "Plasterer", "skillLevel": "skilled",
     "hourlyRate": {"min": 20.0, "max": 35.0, "average": 27.5},
     "dailyRate": {"min": 160.0, "max": 280.0, "average": 220.0}, "inDemand": False},
    {"id": "roofer_skilled", "tradeType": "Roofer", "skillLevel": "skilled",
     "hourlyRate": {"min": 25.0, "max": 42.0, "average": 33.5},
     "dailyRate": {"min": 200.0, "max": 336.0, "average": 268.0}, "inDemand": True},
    {"id": "painter_decorator", "tradeType": "Painter & Decorator", "skillLevel": "skilled",
     "hourlyRate": {"min": 18.0, "max": 30.0, "average": 24.0},
     "dailyRate": {"min": 144.0, "max": 240.0, "average": 192.0}, "inDemand": False},
]


# =============================================================================
# Project type -> relevant categories/trades
# =============================================================================

# Each entry: keywords in the project type, then the material categories,
# tool categories and trades worth returning. General labour is always included.
PROJECT_TYPE_PROFILES: List[Dict[str, Any]] = [
    {"keywords": ("electric", "rewire", "socket", "lighting"),
     "materials": ("electrical",), "tools": ("power_tools", "hand_tools", "safety"),
     "trades": ("electrician",)},
    {"keywords": ("plumb", "bathroom", "heating", "boiler"),
     "materials": ("plumbing", "finishing"), "tools": ("power_tools", "hand_tools", "safety"),
     "trades": ("plumber", "plasterer")},
    {"keywords": ("kitchen",),
     "materials": ("structural", "finishing", "electrical", "plumbing"),
     "tools": ("power_tools", "hand_tools", "safety"),
     "trades": ("carpenter", "electrician", "plumber", "plasterer")},
    {"keywords": ("roof",),
     "materials": ("structural",), "tools": ("access", "power_tools", "hand_tools", "safety"),
     "trades": ("roofer", "carpenter")},
    {"keywords": ("extension", "conversion", "loft", "foundation", "structural"),
     "materials": ("structural", "finishing", "electrical", "plumbing"),
     "tools": ("power_tools", "heavy_machinery", "access", "hand_tools", "safety"),
     "trades": ("bricklayer", "carpenter", "electrician", "plumber", "plasterer", "roofer")},
    {"keywords": ("paint", "decorat"),
     "materials": ("finishing",), "tools": ("access", "hand_tools", "safety"),
     "trades": ("painter",)},
    {"keywords": ("garden", "landscap", "driveway", "patio", "path"),
     "materials": ("structural",), "tools": ("heavy_machinery", "power_tools", "hand_tools", "safety"),
     "trades": ("bricklayer",)},
]

FALLBACK_RECOMMENDATION = (
    "Pricing estimates based on historical data. Verify with local suppliers for current rates."
)
