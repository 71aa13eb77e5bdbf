"""
Catalogue constants for the Kore Kollective distribution portal.

Contains the carton packing constants, the standard assortments, the seed
catalogue used when no saved articles exist, and the distributor directory.
"""

# One carton always holds this many pairs
PAIRS_PER_CARTON = 24

# Stock status bands (in available cartons)
DEFAULT_LOW_STOCK_THRESHOLD = 10
IN_STOCK_ABOVE = 20

# Starting stock for seed articles on a fresh install
DEFAULT_INITIAL_STOCK = 100

# Local storage keys
STORAGE_KEY_USER = "kore_user"
STORAGE_KEY_ARTICLES = "kore_articles"
STORAGE_KEY_INVENTORY = "kore_inventory"
STORAGE_KEY_CART = "kore_cart"
STORAGE_KEY_ORDERS = "kore_orders"
STORAGE_KEY_VENDORS = "kore_vendors"
STORAGE_KEY_CATEGORIES = "kore_categories"
STORAGE_KEY_BRANDS = "kore_brands"
STORAGE_KEY_MANUFACTURERS = "kore_manufacturers"

ASSORTMENTS = [
    {
        "id": "as-women-01",
        "name": "Standard Women (4-8)",
        "type": "WOMEN",
        "totalPairsPerCarton": PAIRS_PER_CARTON,
        "breakup": [
            {"size": "4", "pairs": 3},
            {"size": "5", "pairs": 6},
            {"size": "6", "pairs": 6},
            {"size": "7", "pairs": 6},
            {"size": "8", "pairs": 3},
        ],
    },
    {
        "id": "as-men-01",
        "name": "Standard Men (6-11)",
        "type": "MEN",
        "totalPairsPerCarton": PAIRS_PER_CARTON,
        "breakup": [
            {"size": "6", "pairs": 2},
            {"size": "7", "pairs": 4},
            {"size": "8", "pairs": 6},
            {"size": "9", "pairs": 6},
            {"size": "10", "pairs": 4},
            {"size": "11", "pairs": 2},
        ],
    },
    {
        "id": "as-kids-01",
        "name": "Standard Kids (2-5)",
        "type": "KIDS",
        "totalPairsPerCarton": PAIRS_PER_CARTON,
        "breakup": [
            {"size": "2", "pairs": 4},
            {"size": "3", "pairs": 8},
            {"size": "4", "pairs": 8},
            {"size": "5", "pairs": 4},
        ],
    },
]

ASSORTMENT_BY_GENDER = {
    "MEN": "as-men-01",
    "WOMEN": "as-women-01",
    "KIDS": "as-kids-01",
}

# (name, material, colour, gender, price per pair in INR)
SEED_CATALOGUE = [
    ("Armour", "Fabrication", "Navy", "MEN", 1450),
    ("Armour", "Fabrication", "Black", "MEN", 1450),
    ("Bermuda", "Slide", "Lime", "MEN", 850),
    ("Bermuda", "Slide", "White", "MEN", 850),
    ("Bounce", "Slide", "Beige", "WOMEN", 950),
    ("Bounce", "Slide", "Lilac", "WOMEN", 950),
    ("Braid", "Slide", "Black", "WOMEN", 1150),
    ("Breeze", "Fabrication", "Sage", "WOMEN", 1550),
    ("Cloud", "Fabrication", "Navy", "WOMEN", 1350),
    ("Cuddle", "Slide", "Pink", "WOMEN", 1050),
    ("Formula", "Slide", "Black", "MEN", 1250),
    ("Glitch", "Slide", "Olive", "MEN", 1350),
    ("Halo", "Slide", "Navy", "MEN", 1450),
    ("Iceberg", "Fabrication", "Grey", "WOMEN", 1750),
    ("Palm", "Slide", "Mint", "WOMEN", 950),
    ("Panda", "Slide", "Navy", "KIDS", 550),
    ("Panda", "Slide", "Lt. Pink", "KIDS", 550),
    ("Street", "Slide", "Red", "KIDS", 650),
    ("Torque", "Slide", "Grey", "KIDS", 750),
    ("Vance", "Fabrication", "Brown", "MEN", 1850),
    ("Lust Sandal", "Fabrication", "Beige", "WOMEN", 1850),
    ("Madrid", "Slide", "Grey", "MEN", 1550),
]


def generate_seed_articles():
    """
    Build the seed catalogue as plain article records.

    Returns:
        list[dict]: Article records keyed the way they are persisted
    """
    articles = []
    for idx, (name, _material, colour, gender, price) in enumerate(SEED_CATALOGUE):
        name_key = name.replace(" ", "").upper()
        colour_key = colour.replace(" ", "").upper()
        articles.append(
            {
                "id": f"art-{idx:03d}",
                "sku": f"KK-{gender[0]}-{name_key}-{colour_key}",
                "name": f"{name} ({colour})",
                "category": gender,
                "assortmentId": ASSORTMENT_BY_GENDER[gender],
                "pricePerPair": price,
                "imageUrl": f"https://picsum.photos/seed/{name_key}{colour_key}/400/400",
                "color": colour,
                "catalogStatus": "AVAILABLE",
            }
        )
    return articles


DISTRIBUTORS = [
    {
        "id": "dist-1",
        "email": "star.sales@kore.com",
        "name": "Star sales",
        "role": "DISTRIBUTOR",
        "location": "Jaipur, Rajasthan",
        "companyName": "Star sales & Co.",
    },
    {
        "id": "dist-2",
        "email": "neerav.sales@kore.com",
        "name": "Neerav sales",
        "role": "DISTRIBUTOR",
        "location": "Rohtak, Haryana",
        "companyName": "Neerav sales",
    },
    {
        "id": "dist-3",
        "email": "mittal.footwear@kore.com",
        "name": "Mittal footwear",
        "role": "DISTRIBUTOR",
        "location": "Bangalore, Karnataka",
        "companyName": "Mittal footwear",
    },
    {
        "id": "dist-4",
        "email": "mk.footwear@kore.com",
        "name": "Mk Footwear",
        "role": "DISTRIBUTOR",
        "location": "Uttar Pradesh",
        "companyName": "Mk Footwear",
    },
    {
        "id": "dist-5",
        "email": "veda.sales@kore.com",
        "name": "Veda sales",
        "role": "DISTRIBUTOR",
        "location": "Ernakulam, Kerala",
        "companyName": "Veda sales",
    },
]

# Product-master lists used until the back office edits them
DEFAULT_CATEGORIES = ["Footwear", "Apparel", "Accessories"]

DEFAULT_BRANDS = {
    "Footwear": ["Nike", "Adidas", "Puma", "Reebok"],
    "Apparel": ["Levis", "Zara", "H&M"],
    "Accessories": ["Titan", "Casio"],
}

DEFAULT_MANUFACTURERS = ["Acme Corp", "Global Supplies", "Prime Footwear"]
