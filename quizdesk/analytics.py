"""Attempt counts, averages, histograms and report tables over score rows.

Score rows are the dicts returned by ``quizdesk.scores``; ``histogram`` also
accepts bare numbers. Nothing here touches the database.
"""
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from quizdesk.models import Module, Subject

# upper bound of each bucket, sized for 5 questions x 2 points
HISTOGRAM_BUCKETS = (("0-2", 2), ("3-5", 5), ("6-8", 8), ("9-10", None))

# assumed maximum when a score's quiz can no longer be found
DEFAULT_MAX_SCORE = 10


def _value(row) -> float:
    if isinstance(row, dict):
        return row['score']
    return row


def summarize(quiz_id: str, scores: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    quiz_scores = [s for s in scores if s.get('quiz_id') == quiz_id]
    count = len(quiz_scores)
    if count:
        average = f"{sum(_value(s) for s in quiz_scores) / count:.2f}"
    else:
        average = "N/A"
    return {'quiz_id': quiz_id, 'attempt_count': count, 'average_score': average}


def histogram(scores: Iterable[Any]) -> Dict[str, int]:
    bins = {label: 0 for label, _ in HISTOGRAM_BUCKETS}
    for row in scores:
        value = _value(row)
        for label, upper in HISTOGRAM_BUCKETS:
            if upper is None or value <= upper:
                bins[label] += 1
                break
    return bins


def leaderboard(scores: Iterable[Dict[str, Any]], top_n: int = 5) -> List[Dict[str, Any]]:
    """Best ``top_n`` scores; equal scores keep their submission order."""
    rows = list(scores)
    ranked = sorted(
        enumerate(rows),
        key=lambda pair: (-_value(pair[1]), pair[1].get('id') if pair[1].get('id') is not None else pair[0]),
    )
    return [
        {'student_name': row.get('student_name') or 'Unknown', 'score': row['score']}
        for _, row in ranked[:max(0, top_n)]
    ]


def _module_name_for(modules: List[Module], quiz_id: str) -> str:
    for module in modules:
        if any(q.id == quiz_id for q in module.quizzes):
            return module.name
    return 'Unknown'


def _max_score_for(modules: List[Module], quiz_id: str) -> int:
    for module in modules:
        for quiz in module.quizzes:
            if quiz.id == quiz_id:
                return quiz.max_score or DEFAULT_MAX_SCORE
    return DEFAULT_MAX_SCORE


def subject_report(subject: Subject, scores: List[Dict[str, Any]], module_id: Optional[str] = None,
                   current_only: bool = True) -> List[Dict[str, Any]]:
    """One section per quiz: summary, histogram and the quiz's score rows.

    By default only each module's current quiz is reported; pass
    ``current_only=False`` to include the module's earlier quizzes.
    """
    modules = subject.get_modules()
    if module_id is not None:
        modules = [m for m in modules if m.id == module_id]
    sections = []
    for module in modules:
        quizzes = module.quizzes
        if current_only:
            quizzes = [module.current_quiz] if module.current_quiz else []
        for quiz in quizzes:
            quiz_scores = [s for s in scores if s.get('quiz_id') == quiz.id]
            sections.append({
                'module_id': module.id,
                'module_name': module.name,
                'quiz_id': quiz.id,
                'created_at': quiz.created_at,
                'is_active': quiz.is_active,
                'is_current': quiz is module.current_quiz,
                'max_score': quiz.max_score,
                'summary': summarize(quiz.id, quiz_scores),
                'histogram': histogram(quiz_scores),
                'leaderboard': leaderboard(quiz_scores),
                'scores': quiz_scores,
            })
    return sections


def score_history(scores: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """A student's score rows labelled with subject and module names."""
    history = []
    for row in scores:
        modules = row.get('modules') or []
        history.append({
            'subject_name': row.get('subject_name') or 'Unknown',
            'module_name': _module_name_for(modules, row['quiz_id']),
            'score': row['score'],
            'max_score': _max_score_for(modules, row['quiz_id']),
            'submitted_at': row.get('submitted_at'),
        })
    return history


def student_stats(scores: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Quizzes taken, average percentage and best subject for one student."""
    history = score_history(scores)
    if not history:
        return {'quizzes_taken': 0, 'average_score': 'N/A', 'best_subject': 'N/A'}
    percentages = [h['score'] / h['max_score'] * 100 for h in history]
    by_subject = defaultdict(list)
    for h, pct in zip(history, percentages):
        by_subject[h['subject_name']].append(pct)
    best_subject = max(by_subject, key=lambda name: sum(by_subject[name]) / len(by_subject[name]))
    return {
        'quizzes_taken': len(history),
        'average_score': round(sum(percentages) / len(percentages), 1),
        'best_subject': best_subject,
    }


def scores_frame(scores: Iterable[Dict[str, Any]]) -> pd.DataFrame:
    """Score rows as a DataFrame for tables, CSV export and charts."""
    columns = ['student_name', 'student_roll', 'subject_name', 'quiz_id', 'score', 'submitted_at']
    df = pd.DataFrame(list(scores))
    if df.empty:
        return pd.DataFrame(columns=columns)
    return df[[c for c in columns if c in df.columns]]


def histogram_frame(bins: Dict[str, int]) -> pd.DataFrame:
    return pd.DataFrame({'range': list(bins.keys()), 'students': list(bins.values())})
