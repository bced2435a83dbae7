"""
Keyword Dictionaries

Local knowledge used before any remote call is made.

DESIGN DECISION: Dictionaries are ordered. The first category whose
keyword appears in the text wins, so more specific buckets come before
broad ones (dining before shopping, daily goods before household).
Keywords are matched against ``match_key`` output, so they are written
lower-case and without spaces.
"""

import re

from expense_extraction.models.classification import Category


# =============================================================================
# RECEIPT ITEMS
# =============================================================================

CATEGORY_KEYWORDS: dict[Category, tuple[str, ...]] = {
    Category.DINING: (
        # Meals
        "便當", "早餐", "午餐", "晚餐", "宵夜", "套餐", "餐盒", "飯糰", "三明治", "漢堡",
        "披薩", "壽司", "火鍋", "燒烤", "炸雞", "薯條", "雞塊", "拉麵", "義大利麵", "牛肉麵",
        "炒飯", "燴飯", "滷肉飯", "雞腿", "排骨", "水餃", "鍋貼", "包子", "饅頭", "蛋餅",
        "吐司", "麵包", "蛋糕", "餅乾", "甜點", "布丁", "冰淇淋", "零食", "洋芋片", "巧克力",
        "沙拉", "湯品", "關東煮", "茶葉蛋", "熱狗", "水果", "蔬菜", "海鮮", "肉品", "鳳梨酥",
        "麥當勞", "肯德基", "摩斯", "subway",
        # Drinks
        "飲料", "飲品", "咖啡", "拿鐵", "奶茶", "紅茶", "綠茶", "青茶", "烏龍",
        "果汁", "豆漿", "牛奶", "鮮奶", "優酪乳", "養樂多", "多多", "汽水", "可樂", "雪碧",
        "礦泉水", "啤酒", "紅酒", "白酒", "威士忌", "星巴克", "珍奶",
    ),
    Category.DAILY_GOODS: (
        "衛生紙", "面紙", "濕紙巾", "廚房紙巾", "牙膏", "牙刷", "牙線", "肥皂", "洗髮精",
        "潤髮乳", "沐浴乳", "洗面乳", "洗手乳", "化妝品", "保養品", "面膜", "乳液", "防曬",
        "刮鬍刀", "衛生棉", "尿布", "清潔劑", "洗衣精", "洗衣球", "柔軟精", "漂白水", "洗碗精",
        "菜瓜布", "垃圾袋", "保鮮膜", "鋁箔紙", "棉花棒", "電池", "塑膠袋", "購物袋",
    ),
    Category.MEDICAL: (
        "藥品", "藥局", "感冒藥", "止痛藥", "胃藥", "藥膏", "ok繃", "口罩", "酒精", "體溫計",
        "維他命", "維生素", "保健品", "營養品", "魚油", "益生菌", "葉黃素", "掛號", "門診",
        "診所", "醫院", "隱形眼鏡", "藥水",
    ),
    Category.APPAREL: (
        "衣服", "上衣", "t恤", "襯衫", "外套", "毛衣", "褲子", "牛仔褲", "短褲", "裙子",
        "洋裝", "內衣", "內褲", "襪子", "鞋子", "球鞋", "拖鞋", "涼鞋", "靴子", "帽子",
        "圍巾", "手套", "皮帶", "領帶", "包包", "皮夾", "錢包", "飾品", "項鍊", "耳環",
    ),
    Category.PET: (
        "寵物", "飼料", "狗糧", "貓糧", "貓砂", "罐罐", "肉泥", "潔牙骨", "寵物零食",
        "牽繩", "項圈", "貓抓板", "獸醫",
    ),
    Category.TRANSPORT: (
        "計程車", "uber", "taxi", "公車", "捷運", "火車", "台鐵", "高鐵", "客運", "悠遊卡",
        "一卡通", "加油", "汽油", "柴油", "停車", "過路費", "車票", "租車", "修車",
        "洗車", "機油", "輪胎", "youbike",
    ),
    Category.ENTERTAINMENT: (
        "電影", "影城", "遊戲", "點數卡", "ktv", "唱歌", "演唱會", "音樂會", "展覽", "門票",
        "遊樂園", "健身", "游泳", "瑜珈", "netflix", "spotify", "玩具", "桌遊", "漫畫",
    ),
    Category.EDUCATION: (
        "學費", "補習", "課程", "講座", "教材", "參考書", "課本", "書籍", "字典", "雜誌",
        "文具", "原子筆", "鉛筆", "橡皮擦", "筆記本", "便條紙", "資料夾", "報名費", "考試",
    ),
    Category.TRAVEL: (
        "機票", "旅行社", "旅遊", "導遊", "行李", "伴手禮", "景點", "纜車", "遊船", "護照",
    ),
    Category.LODGING: (
        "飯店", "旅館", "民宿", "住宿", "房費", "hotel", "motel", "hostel", "airbnb", "度假村",
    ),
    Category.BILLS: (
        "水費", "電費", "瓦斯費", "電話費", "網路費", "手機費", "月租費", "管理費", "房租",
        "保險費", "手續費", "服務費", "年費", "月費", "第四台",
    ),
    Category.HOUSEHOLD: (
        "家具", "沙發", "床墊", "枕頭", "棉被", "床單", "被套", "窗簾", "地毯", "燈泡",
        "檯燈", "收納", "置物架", "衣架", "鍋子", "碗盤", "餐具", "杯子", "水壺", "電扇",
        "吹風機", "微波爐", "烤箱", "電鍋",
    ),
    Category.SHOPPING: (
        "手機", "耳機", "充電器", "傳輸線", "行動電源", "電腦", "平板", "滑鼠", "鍵盤",
        "相機", "記憶卡", "隨身碟", "禮券", "禮盒", "網購", "百貨", "量販",
    ),
}

# Words that turn a generic dining hit into a drink
DRINK_TOKENS: tuple[str, ...] = (
    "飲料", "飲品", "咖啡", "拿鐵", "卡布", "摩卡", "奶茶", "紅茶", "綠茶",
    "青茶", "烏龍", "普洱", "鐵觀音", "果汁", "豆漿", "牛奶", "鮮奶", "優酪乳", "養樂多",
    "多多", "汽水", "可樂", "雪碧", "沙士", "礦泉水", "氣泡水", "啤酒", "紅酒", "白酒",
    "威士忌", "調酒", "冰沙", "奶昔", "奶蓋", "珍奶", "珍珠", "波霸", "檸檬", "粉粿",
    "星巴克",
)

DRINK_PATTERN = re.compile(
    r"奶茶|拿鐵|咖啡|紅茶|綠茶|青茶|烏龍|果汁|多多|檸檬|粉粿|珍奶|珍珠|波霸|奶蓋|冰沙|汽水|可樂|雪碧"
)


# =============================================================================
# SPOKEN INPUT
# =============================================================================

# Broad buckets used for short utterances ("計程車 200", "看電影 300").
# Dining stays DINING here: a spoken note rarely says whether it was a drink.
SPOKEN_CATEGORY_KEYWORDS: dict[Category, tuple[str, ...]] = {
    Category.DINING: (
        "餐廳", "美食", "小吃", "咖啡", "飲料", "外送", "便當", "早餐", "午餐", "晚餐",
        "宵夜", "甜點", "蛋糕", "餅乾", "零食", "水果", "蔬菜", "肉類", "海鮮", "米飯",
        "麵食", "湯品", "沙拉", "漢堡", "披薩", "壽司", "火鍋", "燒烤", "炸物", "飲品",
        "奶茶", "果汁", "啤酒", "紅酒", "白酒", "威士忌", "調酒", "茶葉", "咖啡豆",
        "麥當勞", "肯德基",
    ),
    Category.TRANSPORT: (
        "計程車", "公車", "捷運", "火車", "高鐵", "飛機", "加油", "停車", "過路費", "車票",
        "租車", "修車", "洗車", "保養", "牌照稅", "燃料稅", "uber", "taxi", "地鐵", "輕軌",
        "腳踏車", "機車", "汽車", "輪胎", "機油",
    ),
    Category.SHOPPING: (
        "購物", "超市", "便利商店", "百貨", "商場", "賣場", "量販", "批發", "網購", "電商",
        "拍賣", "二手", "特價", "促銷", "3c", "手機", "電腦", "平板", "相機", "家電",
    ),
    Category.ENTERTAINMENT: (
        "電影", "遊戲", "娛樂", "唱歌", "ktv", "電影院", "遊樂園", "主題樂園", "展覽",
        "音樂會", "演唱會", "表演", "戲劇", "運動", "健身", "游泳", "瑜珈", "舞蹈",
    ),
    Category.MEDICAL: (
        "醫院", "診所", "藥", "醫療", "健保", "掛號", "門診", "急診", "住院", "手術",
        "檢查", "抽血", "疫苗", "藥品", "維他命", "保健品", "營養品", "中藥", "西藥",
    ),
    Category.BILLS: (
        "水費", "電費", "瓦斯費", "電話費", "網路費", "手機費", "有線電視", "第四台",
        "管理費", "房租", "房貸", "保險費", "稅金", "罰單", "停車費", "信用卡費",
        "分期付款", "貸款", "利息", "手續費", "服務費", "月費", "年費",
    ),
    Category.LODGING: (
        "飯店", "旅館", "民宿", "住宿", "房費", "hotel", "motel", "hostel", "bnb",
        "airbnb", "度假村", "溫泉",
    ),
    Category.DAILY_GOODS: (
        "衛生紙", "牙膏", "牙刷", "肥皂", "洗髮精", "沐浴乳", "洗面乳", "化妝品", "保養品",
        "面膜", "香水", "清潔劑", "洗衣精", "柔軟精", "漂白水", "洗碗精", "垃圾袋",
        "保鮮膜", "濕紙巾", "棉花棒",
    ),
    Category.EDUCATION: (
        "學費", "補習", "教育", "課程", "講座", "研討會", "工作坊", "訓練", "證照", "考試",
        "報名費", "教材", "參考書", "文具", "字典", "雜誌", "報紙",
    ),
    Category.TRAVEL: (
        "機票", "門票", "導遊", "旅行社", "旅遊", "度假", "觀光", "景點", "古蹟", "動物園",
        "遊船", "潛水", "滑雪", "登山", "露營",
    ),
    Category.APPAREL: (
        "衣服", "褲子", "裙子", "外套", "大衣", "毛衣", "t恤", "襯衫", "內衣", "襪子",
        "鞋子", "靴子", "拖鞋", "帽子", "圍巾", "手套", "包包", "皮夾", "飾品", "手錶",
    ),
    Category.PET: (
        "寵物", "狗", "貓", "飼料", "貓砂", "項圈", "牽繩", "獸醫", "寵物店",
    ),
    Category.HOUSEHOLD: (
        "家具", "沙發", "床墊", "枕頭", "棉被", "床單", "窗簾", "地毯", "燈具", "檯燈",
        "電視", "冰箱", "洗衣機", "冷氣", "電扇", "微波爐", "烤箱",
    ),
}

ACCOUNT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "現金": ("現金", "cash", "付現"),
    "信用卡": ("信用卡", "刷卡", "卡付", "credit"),
    "轉帳": ("轉帳", "匯款", "atm"),
    "電子支付": (
        "電子支付", "行動支付", "手機支付", "app支付", "line pay", "linepay", "apple pay", "applepay",
        "google pay", "googlepay", "街口", "悠遊付", "全支付",
    ),
}

# Non-product words; the single characters for dates and times are left
# out so items such as 分享餐 or 日式便當 pass.
NON_PRODUCT_KEYWORDS: tuple[str, ...] = (
    "公司", "有限公司", "股份有限公司", "企業", "商行", "商店",
    "發票", "統一編號", "統編", "序號", "收據", "憑證", "日期", "時間",
    "總計", "合計", "小計", "稅額", "稅金", "折扣", "優惠",
    "信用卡", "現金", "收現", "找零", "刷卡", "電子支付",
    "地址", "電話", "傳真", "網址", "email", "信箱",
    "備註", "說明", "注意事項", "謝謝", "歡迎", "營業時間",
    "中華民國", "收銀機", "收執聯", "應收", "實收", "回饋金",
)
