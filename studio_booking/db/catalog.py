# studio_booking/db/catalog.py
# Built-in service catalog loaded by reset_services.py

from __future__ import annotations

from typing import Any


def _field(field: str, label: str, placeholder: str, help_text: str, required: bool = True) -> dict[str, Any]:
    return {
        "field": field,
        "required": required,
        "label": label,
        "placeholder": placeholder,
        "helpText": help_text,
    }


def _service(
    *,
    order: int,
    name: str,
    slug: str,
    category: str,
    description: str,
    short: str,
    features: list[str],
    technologies: list[str],
    deliverables: list[str],
    price: float,
    hours: float,
    consultation: int,
    flexible: bool,
    advance: tuple[int, int],
    buffer: int,
    client_info: list[dict[str, Any]],
    documents: list[str],
    steps: list[str],
    icon: str,
    colors: tuple[str, str],
    price_type: str = "project",
    requires_consultation: bool = True,
) -> dict[str, Any]:
    return {
        "name": name,
        "slug": slug,
        "category": category,
        "description": description,
        "shortDescription": short,
        "features": features,
        "technologies": technologies,
        "deliverables": deliverables,
        "pricing": {"basePrice": price, "currency": "EUR", "priceType": price_type, "customPricing": False},
        "duration": {"estimatedHours": hours, "consultationDuration": consultation, "flexibleDuration": flexible},
        "availability": {
            "requiresConsultation": requires_consultation,
            "advanceBooking": {"min": advance[0], "max": advance[1]},
            "bufferTime": {"before": buffer, "after": buffer},
        },
        "requirements": {"clientInfo": client_info, "documents": documents, "preparationSteps": steps},
        "displayOrder": order,
        "icon": icon,
        "color": {"primary": colors[0], "secondary": colors[1]},
        "isActive": True,
    }


SERVICE_CATALOG: list[dict[str, Any]] = [
    _service(
        order=1,
        name="Développement Web",
        slug="developpement-web",
        category="web-development",
        description=(
            "Applications web modernes et performantes avec React, Next.js et Node.js. "
            "Interface utilisateur intuitive et expérience optimisée avec des fonctionnalités avancées."
        ),
        short="Applications web modernes avec React, Next.js et Node.js",
        features=[
            "Single Page Applications (SPA)",
            "Progressive Web Apps (PWA)",
            "API REST & GraphQL",
            "Interfaces responsives",
            "Optimisation SEO",
            "Tests automatisés",
        ],
        technologies=["React", "Next.js", "TypeScript", "Tailwind CSS", "Node.js", "MongoDB"],
        deliverables=["Code source complet", "Documentation technique", "Formation utilisateur", "Support 3 mois inclus"],
        price=2500,
        hours=80,
        consultation=90,
        flexible=True,
        advance=(48, 2160),
        buffer=30,
        client_info=[
            _field("projectDescription", "Description du projet", "Décrivez votre projet web en détail",
                   "Plus vous êtes précis, mieux nous pourrons vous conseiller"),
            _field("technicalRequirements", "Exigences techniques", "Technologies spécifiques, intégrations...",
                   "Mentionnez toute contrainte technique particulière", required=False),
            _field("budget", "Budget prévisionnel", "Votre budget pour ce projet",
                   "Cela nous aide à adapter notre proposition"),
            _field("timeline", "Délai souhaité", "Quand souhaitez-vous lancer le projet ?",
                   "Date de lancement idéale"),
        ],
        documents=["brief", "mockups", "existing-code"],
        steps=[
            "Préparer un brief détaillé du projet",
            "Rassembler les éléments visuels existants",
            "Lister les fonctionnalités souhaitées",
            "Définir les objectifs business",
        ],
        icon="Code",
        colors=("#00F5FF", "#0099CC"),
    ),
    _service(
        order=2,
        name="Applications Mobile",
        slug="applications-mobile",
        category="mobile-development",
        description=(
            "Développement d'applications mobiles performantes pour iOS et Android avec React Native "
            "et Flutter. Applications natives et cross-platform."
        ),
        short="Applications mobiles iOS et Android avec React Native et Flutter",
        features=[
            "Applications React Native",
            "Applications Flutter",
            "App Store Optimization",
            "Notifications push",
            "Géolocalisation",
            "Paiements in-app",
        ],
        technologies=["React Native", "Flutter", "Firebase", "Redux", "Expo", "TypeScript"],
        deliverables=["Apps iOS & Android", "Publication stores", "Analytics intégrées", "Maintenance 6 mois"],
        price=3500,
        hours=120,
        consultation=90,
        flexible=True,
        advance=(72, 2160),
        buffer=30,
        client_info=[
            _field("projectDescription", "Concept de l'application", "Décrivez votre idée d'application mobile",
                   "Fonctionnalités principales, public cible, objectifs"),
            _field("technicalRequirements", "Plateformes ciblées", "iOS, Android, ou les deux ?",
                   "Précisez les versions minimales supportées", required=False),
        ],
        documents=["brief", "mockups", "specifications"],
        steps=[
            "Définir le concept et les fonctionnalités",
            "Étudier la concurrence",
            "Préparer les wireframes ou mockups",
            "Planifier la stratégie de lancement",
        ],
        icon="Smartphone",
        colors=("#9D4EDD", "#7B2CBF"),
    ),
    _service(
        order=3,
        name="Sites E-commerce",
        slug="sites-ecommerce",
        category="ecommerce",
        description=(
            "Solutions e-commerce sur mesure avec gestion des paiements, stocks et analytics avancées. "
            "Boutiques performantes et sécurisées."
        ),
        short="Solutions e-commerce complètes avec paiements et gestion des stocks",
        features=[
            "Boutique Shopify/WooCommerce",
            "Paiements Stripe/PayPal",
            "Gestion des stocks",
            "Analytics avancées",
            "Marketing automation",
            "Multi-devises",
        ],
        technologies=["Shopify", "WooCommerce", "Stripe", "Analytics", "WordPress", "PHP"],
        deliverables=["Boutique complète", "Tunnel de vente", "Dashboard admin", "Formation e-commerce"],
        price=4000,
        hours=100,
        consultation=120,
        flexible=True,
        advance=(72, 2160),
        buffer=30,
        client_info=[
            _field("projectDescription", "Type de boutique", "Produits vendus, modèle économique...",
                   "Décrivez votre activité e-commerce"),
            _field("currentSolution", "Solution actuelle", "Avez-vous déjà une boutique en ligne ?",
                   "Migration ou création from scratch", required=False),
        ],
        documents=["brief", "analytics", "existing-code"],
        steps=[
            "Analyser la concurrence",
            "Définir le catalogue produits",
            "Choisir les moyens de paiement",
            "Planifier la logistique",
        ],
        icon="Globe",
        colors=("#00F5FF", "#00BFFF"),
    ),
    _service(
        order=4,
        name="Architecture Backend",
        slug="architecture-backend",
        category="backend-architecture",
        description=(
            "Conception et développement d'architectures backend performantes avec bases de données "
            "optimisées et APIs robustes."
        ),
        short="Architectures backend performantes avec APIs et bases de données",
        features=[
            "Architecture microservices",
            "Bases de données MongoDB/PostgreSQL",
            "Cache Redis/Elasticsearch",
            "Tests automatisés",
            "Documentation API",
            "Monitoring avancé",
        ],
        technologies=["Node.js", "Python", "MongoDB", "PostgreSQL", "Redis", "Docker"],
        deliverables=["API complète", "Base de données", "Documentation", "Tests unitaires"],
        price=3000,
        hours=80,
        consultation=90,
        flexible=True,
        advance=(48, 2160),
        buffer=30,
        client_info=[
            _field("technicalRequirements", "Besoins techniques", "APIs, bases de données, performances...",
                   "Décrivez vos besoins backend en détail"),
            _field("teamSize", "Taille de l'équipe", "Combien de développeurs utiliseront l'API ?",
                   "Pour dimensionner l'architecture", required=False),
        ],
        documents=["specifications", "existing-code"],
        steps=[
            "Analyser les besoins en performance",
            "Définir les endpoints API",
            "Choisir les technologies",
            "Planifier la scalabilité",
        ],
        icon="Database",
        colors=("#9D4EDD", "#DA70D6"),
    ),
    _service(
        order=5,
        name="Cloud & DevOps",
        slug="cloud-devops",
        category="cloud-devops",
        description=(
            "Déploiement et gestion d'infrastructure cloud avec CI/CD et monitoring avancé. "
            "Solutions AWS, Azure et GCP."
        ),
        short="Infrastructure cloud et DevOps avec CI/CD et monitoring",
        features=[
            "Infrastructure AWS/Azure/GCP",
            "Conteneurisation Docker/Kubernetes",
            "Pipeline CI/CD",
            "Monitoring & alertes",
            "Sauvegardes automatiques",
            "Scalabilité automatique",
        ],
        technologies=["AWS", "Docker", "Kubernetes", "Terraform", "Jenkins", "Prometheus"],
        deliverables=["Infrastructure cloud", "Pipeline déploiement", "Monitoring setup", "Documentation ops"],
        price=2000,
        hours=60,
        consultation=90,
        flexible=True,
        advance=(48, 2160),
        buffer=30,
        client_info=[
            _field("currentSolution", "Infrastructure actuelle", "Serveurs, hébergement, outils utilisés...",
                   "Décrivez votre setup actuel"),
            _field("technicalRequirements", "Objectifs DevOps", "Automatisation, monitoring, scalabilité...",
                   "Quels sont vos objectifs prioritaires ?"),
        ],
        documents=["specifications", "existing-code"],
        steps=[
            "Auditer l'infrastructure existante",
            "Définir les objectifs de performance",
            "Choisir les outils DevOps",
            "Planifier la migration",
        ],
        icon="Cloud",
        colors=("#00F5FF", "#40E0D0"),
    ),
    _service(
        order=6,
        name="Sécurité & Audit",
        slug="securite-audit",
        category="security-audit",
        description=(
            "Audit de sécurité complet et mise en conformité RGPD avec monitoring sécurisé "
            "et tests d'intrusion."
        ),
        short="Audit sécurité et conformité RGPD avec tests d'intrusion",
        features=[
            "Tests d'intrusion",
            "Chiffrement des données",
            "Conformité RGPD",
            "Monitoring sécurisé",
            "Authentification 2FA",
            "Audit de code",
        ],
        technologies=["Security Tools", "OWASP", "SSL/TLS", "Compliance", "Penetration Testing"],
        deliverables=["Rapport d'audit", "Plan de sécurisation", "Mise en conformité", "Formation sécurité"],
        price=1500,
        hours=40,
        consultation=60,
        flexible=False,
        advance=(24, 1440),
        buffer=15,
        client_info=[
            _field("currentSolution", "Système à auditer", "Application, site web, infrastructure...",
                   "Décrivez ce qui doit être audité"),
            _field("technicalRequirements", "Contraintes spécifiques", "Conformité, certifications requises...",
                   "Normes ou certifications à respecter", required=False),
        ],
        documents=["specifications", "existing-code"],
        steps=[
            "Identifier les assets critiques",
            "Définir le périmètre d'audit",
            "Préparer les accès nécessaires",
            "Planifier les tests",
        ],
        icon="Shield",
        colors=("#9D4EDD", "#8A2BE2"),
    ),
    _service(
        order=7,
        name="Consultation Stratégique",
        slug="consultation-strategique",
        category="consulting",
        description=(
            "Conseil stratégique en transformation digitale, choix technologiques et optimisation "
            "des processus métier."
        ),
        short="Conseil stratégique en transformation digitale et technologies",
        features=[
            "Audit technologique",
            "Stratégie digitale",
            "Choix d'architecture",
            "Optimisation processus",
            "Formation équipes",
            "Accompagnement projet",
        ],
        technologies=["Méthodologies Agile", "Architecture", "Strategy", "Process Optimization"],
        deliverables=["Rapport d'audit", "Stratégie digitale", "Roadmap technique", "Plan de formation"],
        price=150,
        price_type="hourly",
        hours=4,
        consultation=60,
        flexible=True,
        requires_consultation=False,
        advance=(24, 720),
        buffer=15,
        client_info=[
            _field("company", "Entreprise", "Nom de votre entreprise",
                   "Pour adapter le conseil à votre contexte"),
            _field("projectDescription", "Problématique", "Décrivez votre problématique ou objectif",
                   "Plus c'est précis, plus le conseil sera pertinent"),
            _field("teamSize", "Taille de l'équipe", "Combien de personnes dans votre équipe tech ?",
                   "Pour adapter les recommandations", required=False),
        ],
        documents=["brief", "specifications"],
        steps=[
            "Préparer les questions spécifiques",
            "Rassembler la documentation existante",
            "Définir les objectifs de la consultation",
            "Préparer le contexte business",
        ],
        icon="Users",
        colors=("#00BFFF", "#1E90FF"),
    ),
]
