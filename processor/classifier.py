"""Ordered keyword/regex routing of events to notification destinations."""
import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from processor.models import Event
from processor.normalizer import normalize_for_identity

logger = logging.getLogger(__name__)


DEFAULT_DESTINATION = 'events'

# Financial events are never notified on a topical channel.
FINANCIAL_EXCLUSION_ALL = 'all'
# Financial events are only kept out of the default channel.
FINANCIAL_EXCLUSION_DEFAULT_ONLY = 'default_only'


@dataclass(frozen=True)
class Rule:
    """A named predicate over folded event text and its destination."""
    name: str
    destination: str
    match: Callable[[str], bool]


def keyword_rule(
    name: str,
    destination: str,
    keywords: Sequence[str] = (),
    patterns: Sequence[str] = ()
) -> Rule:
    """
    Build a rule matching any substring keyword or any regex pattern.

    Keywords and patterns are written in folded form (no accents, lowercase).
    """
    compiled = tuple(re.compile(p) for p in patterns)
    words = tuple(keywords)

    def match(text: str) -> bool:
        return (
            any(regex.search(text) for regex in compiled) or
            any(word in text for word in words)
        )

    return Rule(name=name, destination=destination, match=match)


DEFAULT_RULES: Tuple[Rule, ...] = (
    keyword_rule('Tunnel', 'tunnel', [
        'tunnel termondique de magnitude',
    ]),
    keyword_rule('War', 'war', [
        'declare la guerre',
    ]),
    keyword_rule('Crime', 'crime', [
        'a tente de voler',
        "vient d'achever sa peine",
        'vient de se livrer aux autorites',
        'vient de livrer',
        'a ecrit des graffitis sur le mur',
        'a tente de commettre un attentat',
        'a annule les poursuites contre',
        'a aide les policiers',
        'a lance un avis de recherche contre',
        'vient de se faire assassiner',
        'a conduit dans la prison',
        'des policiers interviennent',
        'un groupe de policiers tente',
        'a impose une amende',
        "a tente de detourner de l'argent",
    ]),
    keyword_rule('Recherche', 'recherche', [
        'a brule par erreur des notes scientifiques',
        'a fixe le salaire pour la recherche technologique',
        'a lance la recherche de la technologie',
        'a donne des informations concernant la technologie',
        'a decouvert la technologie',
        'a fait perdre des fichiers precieux a la recherche scientifique',
        "en tentant d'organiser une manifestation pro-science",
        'a organise une manifestation pro-science',
        "en tentant d'organiser une manifestation anti-science",
        'a organise une manifestation anti-science',
    ]),
    keyword_rule('Discours', 'discours', [
        'a adresse un discours',
        'a prononce un discours',
        'a fait la declaration officielle',
    ]),
    keyword_rule('Rumeur', 'rumeur', [
        'une rumeur court',
        'une rumeur concernant',
        'il se murmure',
    ]),
    keyword_rule('Politique', 'politique', [
        'a perdu son poste',
        'a demissionne',
        'a effectue un sondage',
        "s'est verse une prime",
        'a organise une manifestation contre',
        'a organise une manifestation en soutien',
        'a retire sa candidature',
        'a bafouille un discours',
        'a accorde la recompense',
        'a use de ses prerogatives de',
        "n'a pas reussi a utiliser ses prerogatives",
        'a approuve les actions du gouvernement',
        'a prete allegeance envers',
        "s'est presente aux elections",
        "s'est presentee aux elections",
        "resultat de l'election au poste",
    ], patterns=[
        r'a nomme .+ au poste de',
        r"coup d'etat .+ a usurpe",
        r'les services .+ sont debordes par',
    ]),
    keyword_rule('Finance', 'finance', [
        'vient de modifier la taxe fonciere',
        "vient de modifier le taux d'imposition",
        "vient de modifier l'impot",
        'a defini une nouvelle repartition budgetaire',
        "a pris la decision d'appliquer une prime",
        "a pris la decision d'appliquer une taxe",
        'a impose une taxe',
        'a verse une prime de',
    ], patterns=[
        r'a verse .+ au',
    ]),
)


class EventRouter:
    """First-match-wins router over an ordered rule list."""

    def __init__(
        self,
        rules: Sequence[Rule] = DEFAULT_RULES,
        default_destination: str = DEFAULT_DESTINATION,
        financial_exclusion: str = FINANCIAL_EXCLUSION_ALL
    ):
        if financial_exclusion not in (
            FINANCIAL_EXCLUSION_ALL, FINANCIAL_EXCLUSION_DEFAULT_ONLY
        ):
            raise ValueError(f"Unknown financial exclusion mode: {financial_exclusion}")
        self.rules = tuple(rules)
        self.default_destination = default_destination
        self.financial_exclusion = financial_exclusion

    def route(self, event: Event) -> str:
        """
        Return the destination of the first rule matching the event text.

        A rule whose predicate raises is logged and skipped.
        """
        text = normalize_for_identity(event.text)

        for rule in self.rules:
            try:
                matched = rule.match(text)
            except Exception as e:
                logger.warning(
                    f"Classifier rule fault in '{rule.name}', skipping: {e}",
                    extra={'rule': rule.name, 'error_type': type(e).__name__}
                )
                continue

            if matched:
                return rule.destination
            logger.debug(f"Rule '{rule.name}' did not match")

        return self.default_destination

    def select(self, event: Event, is_financial: bool) -> Optional[str]:
        """
        Pick the notification destination, or None when the event is withheld.

        Financial events are withheld entirely in 'all' mode, and only from
        the default destination in 'default_only' mode.
        """
        if is_financial and self.financial_exclusion == FINANCIAL_EXCLUSION_ALL:
            return None

        destination = self.route(event)
        if is_financial and destination == self.default_destination:
            return None
        return destination
