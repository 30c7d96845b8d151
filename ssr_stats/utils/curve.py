import math
from typing import List, Sequence, Tuple

from ssr_stats.constants import CurveConstants

# (accuracy fraction, pp multiplier) calibrated against the ranked scoring system
CURVE_POINTS: Tuple[Tuple[float, float], ...] = (
    (0.0, 0.0),
    (0.6, 0.18223233667439062),
    (0.65, 0.5866010012767576),
    (0.7, 0.6125565959114954),
    (0.75, 0.6451808210101443),
    (0.8, 0.6872268862950283),
    (0.825, 0.7150465663454271),
    (0.85, 0.7462290664143185),
    (0.875, 0.7816934560296046),
    (0.9, 0.825756123560842),
    (0.91, 0.8488375988124467),
    (0.92, 0.8728710341448851),
    (0.93, 0.9039994071865736),
    (0.94, 0.9417362980580238),
    (0.95, 1.0),
    (0.955, 1.0388633331418984),
    (0.96, 1.0871883573850478),
    (0.965, 1.1552120359501035),
    (0.97, 1.2485807759957321),
    (0.9725, 1.3090333065057616),
    (0.975, 1.3807102743105126),
    (0.9775, 1.4664726399289512),
    (0.98, 1.5702410055532239),
    (0.9825, 1.697536248647543),
    (0.985, 1.8563887693647105),
    (0.9875, 2.058947159052738),
    (0.99, 2.324506282149922),
    (0.99125, 2.4902905794106913),
    (0.9925, 2.685667856592722),
    (0.99375, 2.9190155639254955),
    (0.995, 3.2022017597337955),
    (0.99625, 3.5526145337555373),
    (0.9975, 3.996793606763322),
    (0.99825, 4.325027383589547),
    (0.999, 4.715470646416203),
    (0.9995, 5.019543595874787),
    (1.0, 5.367394282890631),
)

class ScoreSaberCurve:
    """Maps star rating and accuracy to performance points for ranked leaderboards"""

    STAR_MULTIPLIER = CurveConstants.STAR_MULTIPLIER
    WEIGHT_COEFFICIENT = CurveConstants.WEIGHT_COEFFICIENT

    @staticmethod
    def clamp_accuracy(accuracy: float) -> float:
        """
        Clamp an accuracy percentage into [0, 100]

        Args:
            accuracy: Accuracy percentage, possibly out of range from malformed data

        Returns:
            Accuracy within [0, 100]; non-finite input maps to 0 (NaN, -inf) or 100 (+inf)
        """
        if math.isnan(accuracy):
            return CurveConstants.MIN_ACCURACY
        return max(CurveConstants.MIN_ACCURACY, min(CurveConstants.MAX_ACCURACY, accuracy))

    @staticmethod
    def get_modifier(accuracy: float) -> float:
        """
        Get the curve multiplier for an accuracy percentage

        Args:
            accuracy: Accuracy percentage (0-100)

        Returns:
            Multiplier linearly interpolated between the curve points
        """
        accuracy = ScoreSaberCurve.clamp_accuracy(accuracy) / 100

        if accuracy <= 0:
            return 0.0

        if accuracy >= 1:
            return CURVE_POINTS[-1][1]

        for (acc, multiplier), (next_acc, next_multiplier) in zip(CURVE_POINTS, CURVE_POINTS[1:]):
            if acc <= accuracy <= next_acc:
                progress = (accuracy - acc) / (next_acc - acc)
                return multiplier + (next_multiplier - multiplier) * progress

        return 0.0

    @staticmethod
    def get_pp(stars: float, accuracy: float) -> float:
        """
        Get the performance points for a score

        Args:
            stars: Star rating of the leaderboard, 0 or less when unranked
            accuracy: Accuracy percentage (0-100), clamped when out of range

        Returns:
            Performance points, always finite and non-negative
        """
        if not math.isfinite(stars) or stars <= 0:
            return 0.0
        return ScoreSaberCurve.get_modifier(accuracy) * stars * ScoreSaberCurve.STAR_MULTIPLIER

    @staticmethod
    def get_accuracy_for_pp(stars: float, pp: float) -> float:
        """
        Get the accuracy needed on a leaderboard to reach a pp value

        Args:
            stars: Star rating of the leaderboard
            pp: Target performance points

        Returns:
            Smallest accuracy percentage reaching the target, capped at 100
        """
        if not math.isfinite(stars) or stars <= 0 or math.isnan(pp) or pp <= 0:
            return 0.0

        target = pp / (stars * ScoreSaberCurve.STAR_MULTIPLIER)
        if target >= CURVE_POINTS[-1][1]:
            return CurveConstants.MAX_ACCURACY

        for (acc, multiplier), (next_acc, next_multiplier) in zip(CURVE_POINTS, CURVE_POINTS[1:]):
            if multiplier <= target <= next_multiplier:
                progress = (target - multiplier) / (next_multiplier - multiplier)
                return (acc + (next_acc - acc) * progress) * 100

        return CurveConstants.MAX_ACCURACY

    @staticmethod
    def get_weight(index: int) -> float:
        """Get the decay weight for a position in a pp-sorted score list"""
        return math.pow(ScoreSaberCurve.WEIGHT_COEFFICIENT, max(index, 0))

    @staticmethod
    def get_total_weighted_pp(pps: Sequence[float], start_index: int = 0) -> float:
        """
        Get the total weighted pp of a pp-sorted list

        Args:
            pps: Raw pp values sorted descending
            start_index: Weight position of the first value

        Returns:
            Sum of pp multiplied by its position's weight
        """
        return sum(
            pp * ScoreSaberCurve.get_weight(index + start_index)
            for index, pp in enumerate(pps)
        )

    @staticmethod
    def sort_pps(pps: Sequence[float]) -> List[float]:
        """Keep the ranked (positive, finite) pp values, sorted descending"""
        return sorted((pp for pp in pps if math.isfinite(pp) and pp > 0), reverse=True)
