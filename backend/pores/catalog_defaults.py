# Built-in store types and starter products.
#
# Onboarding falls back to these when the database has no StoreTypeDef
# for the chosen key. `flask catalog seed` copies them into the database.
# Prices are in the smallest currency unit.

STORE_TYPES = [
    {"key": "supermarket", "label": "Mini Supermarket", "icon": "shopping-cart"},
    {"key": "provision", "label": "Provision Store", "icon": "store"},
    {"key": "pharmacy", "label": "Pharmacy", "icon": "pill"},
    {"key": "boutique", "label": "Boutique", "icon": "shirt"},
]

PRODUCTS_BY_STORE_TYPE = {
    "supermarket": [
        {"name": "Peak Milk 400g", "brand": "Peak", "category": "Dairy", "cost_price": 2100, "selling_price": 2400, "unit_name": "Tin", "keywords": ["milk", "powdered"]},
        {"name": "Golden Penny Spaghetti 500g", "brand": "Golden Penny", "category": "Pasta", "cost_price": 900, "selling_price": 1100, "unit_name": "Pack", "units_per_bulk": 20, "bulk_selling_price": 20000, "bulk_unit_name": "Carton", "keywords": ["pasta", "noodles"]},
        {"name": "Indomie Chicken 70g", "brand": "Indomie", "category": "Noodles", "cost_price": 180, "selling_price": 250, "unit_name": "Pack", "units_per_bulk": 40, "bulk_selling_price": 9000, "bulk_unit_name": "Carton", "keywords": ["noodles", "instant"]},
        {"name": "Dangote Sugar 500g", "brand": "Dangote", "category": "Baking", "cost_price": 700, "selling_price": 850, "unit_name": "Pack", "keywords": ["sugar"]},
        {"name": "Coca-Cola 50cl", "brand": "Coca-Cola", "category": "Drinks", "cost_price": 250, "selling_price": 350, "unit_name": "Bottle", "units_per_bulk": 12, "bulk_selling_price": 3800, "bulk_unit_name": "Crate", "keywords": ["soda", "soft drink"]},
        {"name": "Eva Water 75cl", "brand": "Eva", "category": "Drinks", "cost_price": 150, "selling_price": 200, "unit_name": "Bottle", "units_per_bulk": 12, "bulk_selling_price": 2200, "bulk_unit_name": "Pack", "keywords": ["water"]},
    ],
    "provision": [
        {"name": "Milo 500g", "brand": "Nestle", "category": "Beverages", "cost_price": 2800, "selling_price": 3200, "unit_name": "Tin", "keywords": ["chocolate", "beverage"]},
        {"name": "Bournvita 500g", "brand": "Cadbury", "category": "Beverages", "cost_price": 2700, "selling_price": 3100, "unit_name": "Tin", "keywords": ["chocolate", "beverage"]},
        {"name": "Maggi Star Cubes", "brand": "Maggi", "category": "Seasoning", "cost_price": 15, "selling_price": 25, "unit_name": "Cube", "units_per_bulk": 100, "bulk_selling_price": 2200, "bulk_unit_name": "Pack", "keywords": ["seasoning", "cube"]},
        {"name": "Power Oil 1L", "brand": "Power", "category": "Cooking Oil", "cost_price": 2300, "selling_price": 2600, "unit_name": "Bottle", "keywords": ["oil", "vegetable"]},
        {"name": "Sunlight Detergent 400g", "brand": "Sunlight", "category": "Household", "cost_price": 800, "selling_price": 1000, "unit_name": "Pack", "keywords": ["soap", "washing"]},
    ],
    "pharmacy": [
        {"name": "Paracetamol 500mg", "brand": "Emzor", "category": "Pain Relief", "cost_price": 300, "selling_price": 500, "unit_name": "Sachet", "units_per_bulk": 10, "bulk_selling_price": 4500, "bulk_unit_name": "Box", "keywords": ["painkiller", "fever"]},
        {"name": "Vitamin C 100mg", "brand": "Emzor", "category": "Supplements", "cost_price": 250, "selling_price": 400, "unit_name": "Sachet", "keywords": ["vitamin", "supplement"]},
        {"name": "Dettol Antiseptic 250ml", "brand": "Dettol", "category": "First Aid", "cost_price": 1800, "selling_price": 2200, "unit_name": "Bottle", "keywords": ["antiseptic", "disinfectant"]},
        {"name": "Plaster Strips", "brand": "Elastoplast", "category": "First Aid", "cost_price": 500, "selling_price": 700, "unit_name": "Pack", "keywords": ["bandage", "plaster"]},
    ],
    "boutique": [
        {"name": "Plain T-Shirt", "brand": "Generic", "category": "Clothing", "cost_price": 2500, "selling_price": 4000, "unit_name": "Piece", "keywords": ["shirt", "top"]},
        {"name": "Denim Jeans", "brand": "Generic", "category": "Clothing", "cost_price": 6000, "selling_price": 9500, "unit_name": "Piece", "keywords": ["trousers", "jeans"]},
        {"name": "Leather Belt", "brand": "Generic", "category": "Accessories", "cost_price": 1500, "selling_price": 2500, "unit_name": "Piece", "keywords": ["belt", "leather"]},
    ],
}
