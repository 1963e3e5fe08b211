import scrapy


class ProductItem(scrapy.Item):
    # identity
    itemUrl = scrapy.Field()
    itemId = scrapy.Field()
    itemName = scrapy.Field()

    # prices
    currency = scrapy.Field()       # ISO code after legacy normalization, e.g. "EUR"
    currentPrice = scrapy.Field()   # the advertised active price
    discounted = scrapy.Field()
    originalPrice = scrapy.Field()  # struck-through price, None unless discounted

    # availability / presentation
    inStock = scrapy.Field()
    img = scrapy.Field()
    category = scrapy.Field()       # breadcrumb path joined with "/"


# Every attribute the downstream table expects; missing ones are written as null.
RECORD_FIELDS = [
    "itemUrl",
    "itemId",
    "itemName",
    "currency",
    "currentPrice",
    "discounted",
    "originalPrice",
    "inStock",
    "img",
    "category",
]
