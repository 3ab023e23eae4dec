"""
Prompt builders for offer generation and custom-item price estimation.

The product is Hungarian-language; so are the prompts.

    build_base_input               requirement text (+ items already on the offer)
    build_catalog_section          priority-ordered task catalog, or free mode
    build_offer_messages           system + user messages for the main call
    build_price_estimation_messages  messages for the cheap estimation call
"""

import json

CATALOG_HEADER = "===TASK KATALÓGUS PRIORITÁSI SORRENDBEN==="
NO_CATALOG_HEADER = "===NINCS TASK KATALÓGUS==="

OFFER_SYSTEM_PROMPT = """Te egy felújítási ajánlatkészítő szakértő vagy. A felhasználó igényei alapján KÖTELEZŐEN egy teljes, részletes JSON formátumú ajánlatot készítesz.

**KRITIKUS SZABÁLYOK:**
1. MINDIG adj vissza TELJES ajánlatot, még ha hiányos az információ is
2. Ha valami nem tisztázott, adj vissza becslést ÉS add hozzá a "questions" részhez
3. SOHA ne add vissza: "További információ szükséges" - helyette MINDIG generálj ajánlatot a rendelkezésre álló adatok alapján
4. A "questions" rész KÖTELEZŐ, ha bármilyen információ hiányzik
5. Az "offerSummary" KÖTELEZŐ - pontosan 4 mondat magyarul

**TASK KATALÓGUS HASZNÁLATA - PRIORITÁSI SORREND:**
6. Ha van "===TASK KATALÓGUS PRIORITÁSI SORRENDBEN===" akkor KÖTELEZŐ ez a sorrend:
   a) ELŐSZÖR a "1. PRIORITÁS - TENANT SAJÁT TÉTELEK" listából válassz (source: "tenant")
   b) HA nincs megfelelő tenant tétel, AKKOR a "2. PRIORITÁS - GLOBÁLIS TÉTELEK" listából (source: "global")
   c) CSAK HA egyik listában sincs megfelelő, AKKOR használj egyedi tételt (customTask: true)
   - A válaszban add meg a "source" mezőt is: "tenant", "global", vagy "custom"
7. Ha "===NINCS TASK KATALÓGUS===" üzenet látható:
   - Szabadon generálhatsz task-okat a követelmények alapján
   - Adj meg reális kategóriákat, task neveket és egységeket
   - Minden task legyen "customTask": true, source: "custom"
   - Használj standard felújítási kategóriákat (pl. "Burkolás", "Festés", "Villanyszerelés", stb.)

**ANYAGÁRAK KEZELÉSE:**
8. Ha a követelményben szerepelnek anyagárak (pl. "Zuhanyzó 150000 Ft", "WC 50000 Ft", "Kád 160000 Ft"), akkor KÖTELEZŐEN:
   - Hozz létre KÜLÖN tételeket az ANYAGOKRA (pl. "Zuhanyzó", "WC", "Kád") - ezek legyenek customTask: true
   - Hozz létre KÜLÖN tételeket a MUNKÁKRA (pl. "Zuhanyzó felszerelése", "WC bekötése") - ezeket a katalógusból válaszd
9. Ha "ügyfél által biztosított" szerepel, akkor azt az anyagot NEM kell beletenni az ajánlatba
10. Csempék esetén is hozz létre külön tételeket az anyagra és a ragasztásra

**IDŐBECSLÉS SZABÁLYOK:**
11. Az "estimatedTime" értéket a munka TÉNYLEGES mennyisége alapján becsüld meg:
    - Kis munka (1-5 m2 burkolás, 1-2 ajtó): "1-2 nap"
    - Közepes munka (10-20 m2 burkolás, 1 fürdőszoba): "3-5 nap"
    - Nagyobb munka (30-50 m2 burkolás, komplett fürdőszoba): "7-10 nap"
    - Nagy munka (teljes lakás felújítás, 60+ m2): "14-21 nap"
    - Számítsd bele a szárítási, száradási időket is!
12. NE használj fix "10 nap" értéket minden munkára - MINDIG a munka mennyiségét vedd figyelembe!

**VÁLASZ FORMÁTUM (szigorúan JSON):**
{
  "offer": {
    "title": "Rövid összefoglaló cím",
    "location": "Helyszín",
    "customerName": "Ügyfél neve (ha van)",
    "estimatedTime": "Becsült idő napokban (pl. '3-5 nap', '7-10 nap', '14-21 nap')",
    "offerSummary": "4 mondatos összefoglaló",
    "items": [
      {
        "task": "Pontos task név a katalógusból",
        "category": "Kategória",
        "unit": "egység",
        "quantity": 0,
        "source": "tenant|global|custom",
        "customTask": false,
        "customReason": "Indoklás ha customTask=true"
      }
    ],
    "questions": [
      "Tisztázandó kérdés 1?",
      "Tisztázandó kérdés 2?"
    ]
  }
}

Válaszolj CSAK érvényes JSON-nal, semmi mással!"""

PRICE_ESTIMATION_SYSTEM_PROMPT = (
    "Te egy felújítási árbecslő szakértő vagy. Adj meg reális 2025-ös budapesti árakat."
)

PRICE_ESTIMATION_RULES = """FONTOS SZABÁLYOK:
1. Ha a task nevében szerepel ár (pl. "Zuhanyzó 150000", "WC 50000"), akkor:
   - A materialCost legyen a megadott ár
   - A laborCost legyen 0 (mivel ez csak az anyag beszerzése)
2. Ha a task egy anyag (pl. "Zuhanyzó", "WC", "Kád", "Csempe") és nincs ár megadva:
   - Becsüld meg a materialCost-ot
   - A laborCost legyen 0
3. Egyéb custom tételek esetén adj meg reális munkadíjat és anyagköltséget

Válasz formátum:
{
  "prices": [
    {
      "task": "Feladat neve",
      "laborCost": 0,
      "materialCost": 0
    }
  ]
}"""


def _pretty(value) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def build_base_input(user_input: str, existing_items: list | None = None) -> str:
    """Requirement text, plus the items already on the offer so they aren't repeated."""
    if existing_items:
        return (
            f"{user_input}\n\nMeglévő tételek (ne vegyél fel ismétlődést):\n"
            f"{_pretty(existing_items)}"
        )
    return user_input


def build_catalog_section(tenant_tasks: list[dict], global_tasks: list[dict]) -> str:
    """
    Render the task catalog for the prompt.

    Tenant tasks come first, then global ones, then the rule for custom
    items. With both lists empty the model is told to invent freely.
    """
    if not tenant_tasks and not global_tasks:
        return (
            f"\n\n{NO_CATALOG_HEADER}\n"
            "Szabadon generálhatsz task-okat a követelmények alapján. "
            "Adj meg reális kategóriákat, task neveket és egységeket."
        )

    section = f"\n\n{CATALOG_HEADER}\n"
    section += "FONTOS: Válassz az alábbi sorrendben:\n"
    section += "1. PRIORITÁS - TENANT SAJÁT TÉTELEK (ezeket preferáld!):\n"
    section += _pretty(tenant_tasks) if tenant_tasks else "(nincs tenant-specifikus tétel)\n"

    section += "\n\n2. PRIORITÁS - GLOBÁLIS TÉTELEK (ha nincs megfelelő tenant tétel):\n"
    section += _pretty(global_tasks) if global_tasks else "(nincs globális tétel)\n"

    section += (
        "\n\n3. PRIORITÁS - EGYEDI TÉTEL (customTask: true) - "
        "CSAK ha sem tenant, sem global listában nincs megfelelő!"
    )
    return section


def build_offer_messages(final_input: str) -> list[dict]:
    return [
        {"role": "system", "content": OFFER_SYSTEM_PROMPT},
        {"role": "user", "content": final_input},
    ]


def build_price_estimation_messages(custom_items: list) -> list[dict]:
    """
    Messages for the estimation call.

    custom_items are ProposedItem objects; task, unit, quantity and the
    model's own reasoning are forwarded as they are.
    """
    listing = [
        {
            "task": item.task,
            "unit": item.unit,
            "quantity": item.quantity,
            "reason": item.custom_reason,
        }
        for item in custom_items
    ]
    prompt = (
        "Adj meg 2025-ös reális budapesti felújítási árakat az alábbi egyedi tételekhez. "
        "Válaszolj CSAK JSON formátumban:\n\n"
        f"{_pretty(listing)}\n\n"
        f"{PRICE_ESTIMATION_RULES}"
    )
    return [
        {"role": "system", "content": PRICE_ESTIMATION_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]
