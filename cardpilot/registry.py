"""
Curated merchant registry.

Records are matched in the order they appear in ``MERCHANT_REGISTRY``; the
first record whose domain equals the lookup domain (or is a parent of it)
wins. Do not sort this table.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple
from urllib.parse import urlsplit

from cardpilot.categories import Confidence, MerchantCategory
from cardpilot.domain import domain_matches

REGISTRY_VERIFIED_AT = "2025-12-01"

GROCERY_EXCLUSION_FLAGS = ("grocery-excluded", "grocery-excluded-by-most-cards")
WAREHOUSE_TAG = "warehouse"


@dataclass(frozen=True)
class CategoryOverrideRule:
    """
    Path or query based category override for a single merchant.

    Fields:
    - path_includes: substrings matched against the URL path
    - query_includes: substrings matched against the URL query string
    - category: category to use when any substring matches
    - confidence: confidence to report for the overridden category
    - reason: short explanation shown in the decision trace
    """
    category: MerchantCategory
    confidence: Confidence
    reason: str
    path_includes: Tuple[str, ...] = ()
    query_includes: Tuple[str, ...] = ()

    def matches(self, url: str) -> bool:
        parts = urlsplit(url if "://" in url else f"https://{url}")
        path = parts.path.lower()
        query = parts.query.lower()
        return any(p in path for p in self.path_includes) or any(
            q in query for q in self.query_includes
        )


@dataclass(frozen=True)
class MerchantRecord:
    """
    A curated merchant.

    Fields:
    - id: stable slug
    - display_name: name shown to users
    - domains: lower-cased domains owned by the merchant
    - default_category: category used unless an override rule matches
    - tags: free-form descriptors ('warehouse', 'delivery', ...)
    - exclusions: reward exclusion flags ('grocery-excluded', ...)
    - category_overrides: path/query sub-rules, checked in order
    - verified: whether the record was checked by a human
    - last_verified_at: ISO date of the last check
    """
    id: str
    display_name: str
    domains: Tuple[str, ...]
    default_category: MerchantCategory
    tags: Tuple[str, ...] = ()
    exclusions: Tuple[str, ...] = ()
    category_overrides: Tuple[CategoryOverrideRule, ...] = ()
    verified: bool = True
    last_verified_at: Optional[str] = REGISTRY_VERIFIED_AT

    @property
    def excluded_from_grocery(self) -> bool:
        return any(flag in self.exclusions for flag in GROCERY_EXCLUSION_FLAGS)

    @property
    def is_warehouse(self) -> bool:
        return WAREHOUSE_TAG in self.tags

    def category_override_for(self, url: str) -> Optional[CategoryOverrideRule]:
        for rule in self.category_overrides:
            if rule.matches(url):
                return rule
        return None


def _merchant(
    merchant_id: str,
    display_name: str,
    domains: List[str],
    category: str,
    tags: Optional[List[str]] = None,
    exclusions: Optional[List[str]] = None,
    overrides: Optional[List[CategoryOverrideRule]] = None,
    verified: bool = True,
) -> MerchantRecord:
    return MerchantRecord(
        id=merchant_id,
        display_name=display_name,
        domains=tuple(d.lower() for d in domains),
        default_category=MerchantCategory(category),
        tags=tuple(tags or ()),
        exclusions=tuple(exclusions or ()),
        category_overrides=tuple(overrides or ()),
        verified=verified,
    )


_AMAZON_FRESH = CategoryOverrideRule(
    category=MerchantCategory.GROCERIES,
    confidence=Confidence.MEDIUM,
    reason="Amazon Fresh grocery order",
    path_includes=("/fresh", "/alm/"),
    query_includes=("i=amazonfresh",),
)


MERCHANT_REGISTRY: List[MerchantRecord] = [
    # Grocery
    _merchant("walmart", "Walmart", ["walmart.com"], "department_store", tags=["big-box", "general"], exclusions=["grocery-excluded-by-most-cards"]),
    _merchant("target", "Target", ["target.com"], "department_store", tags=["big-box", "general"], exclusions=["grocery-excluded-by-most-cards"]),
    _merchant("costco", "Costco", ["costco.com"], "warehouse_club", tags=["warehouse", "membership"], exclusions=["grocery-excluded", "warehouse-excluded"]),
    _merchant("samsclub", "Sam's Club", ["samsclub.com"], "warehouse_club", tags=["warehouse", "membership"], exclusions=["grocery-excluded", "warehouse-excluded"]),
    _merchant("bjs", "BJ's Wholesale", ["bjs.com"], "warehouse_club", tags=["warehouse", "membership"], exclusions=["grocery-excluded", "warehouse-excluded"]),
    _merchant("wholefoodsmarket", "Whole Foods", ["wholefoodsmarket.com", "wholefoods.com"], "groceries", tags=["organic", "premium"]),
    _merchant("kroger", "Kroger", ["kroger.com"], "groceries", tags=["supermarket"]),
    _merchant("safeway", "Safeway", ["safeway.com"], "groceries", tags=["supermarket"]),
    _merchant("traderjoes", "Trader Joe's", ["traderjoes.com"], "groceries", tags=["specialty"]),
    _merchant("aldi", "Aldi", ["aldi.us", "aldi.com"], "groceries", tags=["discount"]),
    _merchant("publix", "Publix", ["publix.com"], "groceries", tags=["supermarket"]),
    _merchant("wegmans", "Wegmans", ["wegmans.com"], "groceries", tags=["supermarket", "premium"]),
    _merchant("heb", "H-E-B", ["heb.com"], "groceries", tags=["supermarket"]),
    _merchant("albertsons", "Albertsons", ["albertsons.com"], "groceries", tags=["supermarket"]),
    _merchant("stopandshop", "Stop & Shop", ["stopandshop.com"], "groceries", tags=["supermarket"]),
    _merchant("giantfood", "Giant Food", ["giantfood.com"], "groceries", tags=["supermarket"]),
    _merchant("foodlion", "Food Lion", ["foodlion.com"], "groceries", tags=["supermarket", "discount"]),
    _merchant("sprouts", "Sprouts", ["sprouts.com"], "groceries", tags=["organic", "health"]),
    _merchant("instacart", "Instacart", ["instacart.com"], "groceries", tags=["delivery", "marketplace"]),

    # Dining
    _merchant("doordash", "DoorDash", ["doordash.com"], "dining", tags=["delivery", "marketplace"]),
    _merchant("ubereats", "Uber Eats", ["ubereats.com"], "dining", tags=["delivery", "marketplace"]),
    _merchant("grubhub", "Grubhub", ["grubhub.com"], "dining", tags=["delivery", "marketplace"]),
    _merchant("postmates", "Postmates", ["postmates.com"], "dining", tags=["delivery"]),
    _merchant("seamless", "Seamless", ["seamless.com"], "dining", tags=["delivery"]),
    _merchant("chipotle", "Chipotle", ["chipotle.com"], "dining", tags=["fast-casual"]),
    _merchant("starbucks", "Starbucks", ["starbucks.com"], "dining", tags=["coffee"]),
    _merchant("mcdonalds", "McDonald's", ["mcdonalds.com"], "dining", tags=["fast-food"]),
    _merchant("wendys", "Wendy's", ["wendys.com"], "dining", tags=["fast-food"]),
    _merchant("burgerking", "Burger King", ["bk.com", "burgerking.com"], "dining", tags=["fast-food"]),
    _merchant("tacobell", "Taco Bell", ["tacobell.com"], "dining", tags=["fast-food"]),
    _merchant("chickfila", "Chick-fil-A", ["chick-fil-a.com"], "dining", tags=["fast-food"]),
    _merchant("dominos", "Domino's", ["dominos.com"], "dining", tags=["pizza", "delivery"]),
    _merchant("pizzahut", "Pizza Hut", ["pizzahut.com"], "dining", tags=["pizza"]),
    _merchant("papajohns", "Papa John's", ["papajohns.com"], "dining", tags=["pizza"]),
    _merchant("subway", "Subway", ["subway.com", "order.subway.com"], "dining", tags=["fast-food"]),
    _merchant("olivegarden", "Olive Garden", ["olivegarden.com"], "dining", tags=["casual-dining"]),
    _merchant("applebees", "Applebee's", ["applebees.com"], "dining", tags=["casual-dining"]),
    _merchant("chilis", "Chili's", ["chilis.com"], "dining", tags=["casual-dining"]),
    _merchant("tgifridays", "TGI Friday's", ["tgifridays.com"], "dining", tags=["casual-dining"]),
    _merchant("outback", "Outback Steakhouse", ["outback.com"], "dining", tags=["casual-dining"]),
    _merchant("panerabread", "Panera Bread", ["panerabread.com"], "dining", tags=["fast-casual"]),
    _merchant("dunkin", "Dunkin'", ["dunkindonuts.com", "dunkin.com"], "dining", tags=["coffee", "fast-food"]),

    # Online Retail
    _merchant("amazon", "Amazon", ["amazon.com", "amzn.com", "smile.amazon.com"], "online_retail", tags=["marketplace", "general"], overrides=[_AMAZON_FRESH]),
    _merchant("ebay", "eBay", ["ebay.com"], "online_retail", tags=["marketplace", "auction"]),
    _merchant("etsy", "Etsy", ["etsy.com"], "online_retail", tags=["marketplace", "handmade"]),
    _merchant("aliexpress", "AliExpress", ["aliexpress.com"], "online_retail", tags=["marketplace", "international"]),
    _merchant("temu", "Temu", ["temu.com"], "online_retail", tags=["discount", "marketplace"]),
    _merchant("shein", "Shein", ["shein.com", "us.shein.com"], "apparel", tags=["fast-fashion", "discount"]),
    _merchant("wish", "Wish", ["wish.com"], "online_retail", tags=["discount", "marketplace"]),

    # Travel
    _merchant("expedia", "Expedia", ["expedia.com"], "travel", tags=["ota", "booking"]),
    _merchant("booking", "Booking.com", ["booking.com"], "travel", tags=["ota", "hotels"]),
    _merchant("airbnb", "Airbnb", ["airbnb.com"], "travel", tags=["lodging", "vacation"]),
    _merchant("vrbo", "Vrbo", ["vrbo.com"], "travel", tags=["lodging", "vacation"]),
    _merchant("kayak", "Kayak", ["kayak.com"], "travel", tags=["metasearch"]),
    _merchant("priceline", "Priceline", ["priceline.com"], "travel", tags=["ota", "discount"]),
    _merchant("tripadvisor", "TripAdvisor", ["tripadvisor.com"], "travel", tags=["reviews", "booking"]),
    _merchant("hotels", "Hotels.com", ["hotels.com"], "travel", tags=["ota", "hotels"]),
    _merchant("marriott", "Marriott", ["marriott.com"], "travel", tags=["hotel-chain"]),
    _merchant("hilton", "Hilton", ["hilton.com"], "travel", tags=["hotel-chain"]),
    _merchant("hyatt", "Hyatt", ["hyatt.com"], "travel", tags=["hotel-chain"]),
    _merchant("ihg", "IHG", ["ihg.com"], "travel", tags=["hotel-chain"]),
    _merchant("wyndham", "Wyndham", ["wyndhamhotels.com"], "travel", tags=["hotel-chain"]),

    # Airlines
    _merchant("delta", "Delta Airlines", ["delta.com"], "travel", tags=["airline"]),
    _merchant("united", "United Airlines", ["united.com"], "travel", tags=["airline"]),
    _merchant("american", "American Airlines", ["aa.com"], "travel", tags=["airline"]),
    _merchant("southwest", "Southwest Airlines", ["southwest.com"], "travel", tags=["airline", "budget"]),
    _merchant("jetblue", "JetBlue", ["jetblue.com"], "travel", tags=["airline"]),
    _merchant("spirit", "Spirit Airlines", ["spirit.com"], "travel", tags=["airline", "ultra-budget"]),
    _merchant("frontier", "Frontier Airlines", ["flyfrontier.com"], "travel", tags=["airline", "ultra-budget"]),
    _merchant("alaska", "Alaska Airlines", ["alaskaair.com"], "travel", tags=["airline"]),

    # Transit
    _merchant("uber", "Uber", ["uber.com"], "transit", tags=["rideshare"]),
    _merchant("lyft", "Lyft", ["lyft.com"], "transit", tags=["rideshare"]),
    _merchant("hertz", "Hertz", ["hertz.com"], "travel", tags=["car-rental"]),
    _merchant("enterprise", "Enterprise", ["enterprise.com"], "travel", tags=["car-rental"]),
    _merchant("avis", "Avis", ["avis.com"], "travel", tags=["car-rental"]),
    _merchant("budget", "Budget", ["budget.com"], "travel", tags=["car-rental"]),
    _merchant("national", "National", ["nationalcar.com"], "travel", tags=["car-rental"]),

    # Gas
    _merchant("shell", "Shell", ["shell.com", "shell.us"], "gas", tags=["gas-station"]),
    _merchant("chevron", "Chevron", ["chevron.com"], "gas", tags=["gas-station"]),
    _merchant("exxon", "Exxon", ["exxon.com"], "gas", tags=["gas-station"]),
    _merchant("mobil", "Mobil", ["exxonmobil.com"], "gas", tags=["gas-station"]),
    _merchant("bp", "BP", ["bp.com"], "gas", tags=["gas-station"]),
    _merchant("speedway", "Speedway", ["speedway.com"], "gas", tags=["gas-station", "convenience"]),
    _merchant("suncor", "Sunoco", ["sunoco.com"], "gas", tags=["gas-station"]),
    _merchant("wawa", "Wawa", ["wawa.com"], "gas", tags=["gas-station", "convenience"]),
    _merchant("sheetz", "Sheetz", ["sheetz.com"], "gas", tags=["gas-station", "convenience"]),
    _merchant("racetrac", "RaceTrac", ["racetrac.com"], "gas", tags=["gas-station", "convenience"]),
    _merchant("quiktrip", "QuikTrip", ["quiktrip.com"], "gas", tags=["gas-station", "convenience"]),
    _merchant("cumberlandfarms", "Cumberland Farms", ["cumberlandfarms.com"], "gas", tags=["gas-station", "convenience"]),

    # Streaming
    _merchant("netflix", "Netflix", ["netflix.com"], "streaming", tags=["video"]),
    _merchant("spotify", "Spotify", ["spotify.com"], "streaming", tags=["music"]),
    _merchant("hulu", "Hulu", ["hulu.com"], "streaming", tags=["video"]),
    _merchant("disneyplus", "Disney+", ["disneyplus.com", "disney.com"], "streaming", tags=["video"]),
    _merchant("max", "Max", ["max.com", "hbomax.com"], "streaming", tags=["video"]),
    _merchant("peacock", "Peacock", ["peacocktv.com"], "streaming", tags=["video"]),
    _merchant("paramount", "Paramount+", ["paramountplus.com"], "streaming", tags=["video"]),
    _merchant("appletv", "Apple TV+", ["tv.apple.com"], "streaming", tags=["video"]),
    _merchant("youtube", "YouTube", ["youtube.com", "youtu.be"], "streaming", tags=["video", "ugc"]),
    _merchant("twitch", "Twitch", ["twitch.tv"], "streaming", tags=["gaming", "live"]),
    _merchant("applemusic", "Apple Music", ["music.apple.com"], "streaming", tags=["music"]),
    _merchant("amazonmusic", "Amazon Music", ["music.amazon.com"], "streaming", tags=["music"]),
    _merchant("pandora", "Pandora", ["pandora.com"], "streaming", tags=["music"]),
    _merchant("tidal", "Tidal", ["tidal.com"], "streaming", tags=["music"]),
    _merchant("audible", "Audible", ["audible.com"], "streaming", tags=["audiobooks"]),

    # Drugstores
    _merchant("cvs", "CVS", ["cvs.com"], "drugstores", tags=["pharmacy", "convenience"]),
    _merchant("walgreens", "Walgreens", ["walgreens.com"], "drugstores", tags=["pharmacy", "convenience"]),
    _merchant("riteaid", "Rite Aid", ["riteaid.com"], "drugstores", tags=["pharmacy"]),

    # Apparel
    _merchant("nike", "Nike", ["nike.com"], "apparel", tags=["sportswear", "footwear"]),
    _merchant("adidas", "Adidas", ["adidas.com"], "apparel", tags=["sportswear", "footwear"]),
    _merchant("underarmour", "Under Armour", ["underarmour.com"], "apparel", tags=["sportswear"]),
    _merchant("lululemon", "Lululemon", ["lululemon.com"], "apparel", tags=["athletic"]),
    _merchant("nordstrom", "Nordstrom", ["nordstrom.com", "nordstromrack.com"], "department_store", tags=["premium"]),
    _merchant("macys", "Macy's", ["macys.com"], "department_store", tags=["department-store"]),
    _merchant("saks", "Saks Fifth Avenue", ["saksfifthavenue.com", "saksoff5th.com"], "department_store", tags=["luxury"]),
    _merchant("bloomingdales", "Bloomingdale's", ["bloomingdales.com"], "department_store", tags=["premium"]),
    _merchant("neimanmarcus", "Neiman Marcus", ["neimanmarcus.com"], "department_store", tags=["luxury"]),
    _merchant("jcpenney", "JCPenney", ["jcpenney.com"], "department_store", tags=["department-store"]),
    _merchant("kohls", "Kohl's", ["kohls.com"], "department_store", tags=["department-store"]),
    _merchant("gap", "Gap", ["gap.com"], "apparel", tags=["casual"]),
    _merchant("oldnavy", "Old Navy", ["oldnavy.com"], "apparel", tags=["casual", "value"]),
    _merchant("bananarepublic", "Banana Republic", ["bananarepublic.com"], "apparel", tags=["casual", "business"]),
    _merchant("hm", "H&M", ["hm.com", "www2.hm.com"], "apparel", tags=["fast-fashion"]),
    _merchant("zara", "Zara", ["zara.com"], "apparel", tags=["fast-fashion"]),
    _merchant("uniqlo", "Uniqlo", ["uniqlo.com"], "apparel", tags=["basics"]),
    _merchant("asos", "ASOS", ["asos.com"], "apparel", tags=["online", "fashion"]),
    _merchant("footlocker", "Foot Locker", ["footlocker.com"], "apparel", tags=["footwear"]),

    # Electronics
    _merchant("apple", "Apple", ["apple.com"], "electronics", tags=["tech", "premium"]),
    _merchant("bestbuy", "Best Buy", ["bestbuy.com"], "electronics", tags=["electronics", "appliances"]),
    _merchant("newegg", "Newegg", ["newegg.com"], "electronics", tags=["electronics", "computers"]),
    _merchant("bhphoto", "B&H Photo", ["bhphotovideo.com"], "electronics", tags=["electronics", "cameras"]),
    _merchant("microsoft", "Microsoft", ["microsoft.com", "xbox.com"], "electronics", tags=["tech", "software"]),
    _merchant("samsung", "Samsung", ["samsung.com"], "electronics", tags=["tech", "devices"]),
    _merchant("dell", "Dell", ["dell.com"], "electronics", tags=["computers"]),
    _merchant("lenovo", "Lenovo", ["lenovo.com"], "electronics", tags=["computers"]),
    _merchant("hp", "HP", ["hp.com"], "electronics", tags=["computers", "printers"]),

    # Home Improvement
    _merchant("homedepot", "Home Depot", ["homedepot.com"], "home_improvement", tags=["hardware", "home"]),
    _merchant("lowes", "Lowe's", ["lowes.com"], "home_improvement", tags=["hardware", "home"]),
    _merchant("ikea", "IKEA", ["ikea.com"], "home_improvement", tags=["furniture"]),
    _merchant("wayfair", "Wayfair", ["wayfair.com"], "home_improvement", tags=["furniture", "home"]),
    _merchant("williams-sonoma", "Williams-Sonoma", ["williams-sonoma.com"], "home_improvement", tags=["kitchen", "premium"]),
    _merchant("potterybarn", "Pottery Barn", ["potterybarn.com"], "home_improvement", tags=["furniture", "home"]),
    _merchant("crateandbarrel", "Crate & Barrel", ["crateandbarrel.com"], "home_improvement", tags=["furniture", "home"]),
    _merchant("bedbathandbeyond", "Bed Bath & Beyond", ["bedbathandbeyond.com"], "home_improvement", tags=["home", "bedding"]),
    _merchant("containerstore", "The Container Store", ["containerstore.com"], "home_improvement", tags=["organization"]),
    _merchant("houzz", "Houzz", ["houzz.com"], "home_improvement", tags=["home", "marketplace"]),

    # Beauty
    _merchant("sephora", "Sephora", ["sephora.com"], "beauty", tags=["cosmetics", "premium"]),
    _merchant("ulta", "Ulta", ["ulta.com"], "beauty", tags=["cosmetics"]),
    _merchant("bathandbodyworks", "Bath & Body Works", ["bathandbodyworks.com"], "beauty", tags=["fragrance", "body"]),

    # Entertainment
    _merchant("ticketmaster", "Ticketmaster", ["ticketmaster.com"], "entertainment", tags=["tickets", "events"]),
    _merchant("stubhub", "StubHub", ["stubhub.com"], "entertainment", tags=["tickets", "resale"]),
    _merchant("seatgeek", "SeatGeek", ["seatgeek.com"], "entertainment", tags=["tickets"]),
    _merchant("fandango", "Fandango", ["fandango.com"], "entertainment", tags=["movies", "tickets"]),
    _merchant("amctheatres", "AMC Theatres", ["amctheatres.com"], "entertainment", tags=["movies"]),
    _merchant("regalcinemas", "Regal Cinemas", ["regmovies.com"], "entertainment", tags=["movies"]),

    # Gaming
    _merchant("steam", "Steam", ["store.steampowered.com", "steampowered.com"], "entertainment", tags=["gaming", "digital"]),
    _merchant("playstation", "PlayStation Store", ["store.playstation.com", "playstation.com"], "entertainment", tags=["gaming", "digital"]),
    _merchant("gamestop", "GameStop", ["gamestop.com"], "electronics", tags=["gaming", "retail"]),

    # Telecom
    _merchant("verizon", "Verizon", ["verizon.com"], "telecom", tags=["mobile", "internet"]),
    _merchant("att", "AT&T", ["att.com"], "telecom", tags=["mobile", "internet"]),
    _merchant("tmobile", "T-Mobile", ["t-mobile.com"], "telecom", tags=["mobile"]),
    _merchant("xfinity", "Xfinity", ["xfinity.com"], "telecom", tags=["internet", "cable"]),
    _merchant("spectrum", "Spectrum", ["spectrum.com"], "telecom", tags=["internet", "cable"]),

    # Utilities
    _merchant("pge", "PG&E", ["pge.com"], "utilities", tags=["electric", "gas"]),
    _merchant("coned", "Con Edison", ["coned.com"], "utilities", tags=["electric"]),

    # Sports & Outdoors
    _merchant("dickssportinggoods", "Dick's Sporting Goods", ["dickssportinggoods.com"], "sports", tags=["sports", "outdoor"]),
    _merchant("rei", "REI", ["rei.com"], "sports", tags=["outdoor"]),
    _merchant("cabelas", "Cabela's", ["cabelas.com"], "sports", tags=["outdoor", "hunting"]),
    _merchant("basspro", "Bass Pro Shops", ["basspro.com"], "sports", tags=["outdoor", "fishing"]),
    _merchant("patagonia", "Patagonia", ["patagonia.com"], "apparel", tags=["outdoor"]),
    _merchant("thenorthface", "The North Face", ["thenorthface.com"], "apparel", tags=["outdoor"]),

    # Pet
    _merchant("petco", "Petco", ["petco.com"], "pet", tags=["pet"]),
    _merchant("petsmart", "PetSmart", ["petsmart.com"], "pet", tags=["pet"]),
    _merchant("chewy", "Chewy", ["chewy.com"], "pet", tags=["pet", "online"]),

    # Office
    _merchant("staples", "Staples", ["staples.com"], "office", tags=["office"]),
    _merchant("officedepot", "Office Depot", ["officedepot.com"], "office", tags=["office"]),
]


def find_merchant_by_domain(domain: str, registry: Optional[List[MerchantRecord]] = None) -> Optional[MerchantRecord]:
    """Return the first record owning ``domain`` (exact or parent-domain match)."""
    if not domain:
        return None
    normalized = domain.strip().lower()
    if normalized.startswith("www."):
        normalized = normalized[4:]

    for merchant in registry if registry is not None else MERCHANT_REGISTRY:
        for registered in merchant.domains:
            if domain_matches(normalized, registered):
                return merchant
    return None


def search_merchants(query: str, registry: Optional[List[MerchantRecord]] = None) -> List[MerchantRecord]:
    """Case-insensitive substring search over name, id and domains."""
    needle = (query or "").strip().lower()
    if not needle:
        return []
    return [
        m
        for m in (registry if registry is not None else MERCHANT_REGISTRY)
        if needle in m.display_name.lower()
        or needle in m.id
        or any(needle in d for d in m.domains)
    ]
