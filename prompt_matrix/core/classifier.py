"""
Intent classifier: heuristic scoring of user input and routing decisions.
"""

from typing import Dict, List, Optional, Tuple

from ..models import IntentType, AgentType, RequestContext, RoutingDecision
from ..utils import get_logger, ClassificationError

DEFAULT_CONFIDENCE_THRESHOLD = 0.6

INTENT_AGENT_MAP: Dict[IntentType, str] = {
    IntentType.REVERSE_ANALYSIS: AgentType.X0_REVERSE.value,
    IntentType.OPTIMIZE: AgentType.X0_OPTIMIZER.value,
    IntentType.SCENARIO_DESIGN: AgentType.X4_SCENARIO.value,
    IntentType.BASIC_DESIGN: AgentType.X1_BASIC.value,
    IntentType.CHAT: AgentType.CONDUCTOR.value,
}

BASE_CONFIDENCE: Dict[IntentType, float] = {
    IntentType.REVERSE_ANALYSIS: 0.9,
    IntentType.OPTIMIZE: 0.8,
    IntentType.SCENARIO_DESIGN: 0.75,
    IntentType.BASIC_DESIGN: 0.6,
    IntentType.CHAT: 0.5,
}

INTENT_REASONING: Dict[IntentType, str] = {
    IntentType.REVERSE_ANALYSIS: '检测到完整提示词结构，调用X0逆向工程师进行分析',
    IntentType.OPTIMIZE: '检测到优化需求关键词，调用X0优化师进行提升',
    IntentType.SCENARIO_DESIGN: '检测到场景化需求，调用X4场景工程师进行设计',
    IntentType.BASIC_DESIGN: '通用Agent设计需求，调用X1基础工程师',
    IntentType.CHAT: '普通对话，由Conductor处理',
}


class IntentClassifier:
    """
    Rule-based intent classifier.

    Scores every intent for a piece of user input and picks the highest:
    - REVERSE_ANALYSIS: structural prompt markers, line count and length
    - OPTIMIZE: weighted optimization keywords, halved for very short input
    - SCENARIO_DESIGN: best-matching scenario category
    - BASIC_DESIGN / CHAT: fixed baselines

    A winner below the confidence threshold, or a tie for first place, falls
    back to BASIC_DESIGN.
    """

    def __init__(self, confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD):
        self.logger = get_logger(__name__)
        self.confidence_threshold = confidence_threshold

        self.prompt_keywords = [
            'Role', 'Background', 'Profile', 'Skills', 'Goals',
            'Constrains', 'Workflow', 'OutputFormat',
            '你是', '作为', '角色', '技能', '目标',
        ]

        self.optimize_keywords: List[Tuple[str, float]] = [
            ('优化', 1.0),
            ('改进', 0.8),
            ('提升', 0.8),
            ('增强', 0.7),
            ('完善', 0.6),
            ('optimize', 1.0),
            ('improve', 0.8),
            ('enhance', 0.7),
            ('refine', 0.6),
            ('修改', 0.5),
            ('调整', 0.4),
        ]

        # name -> (keywords, weight)
        self.scenario_categories: Dict[str, Tuple[List[str], float]] = {
            '编程': (['编程', '代码', '开发', 'programming', 'coding', 'developer', '程序', '软件'], 1.0),
            '写作': (['写作', '文章', '内容', 'writing', 'content', 'article', '文案', '创作'], 1.0),
            '数据分析': (['数据分析', '分析', 'analysis', 'data', '数据', '统计', '报表'], 1.0),
            '客服助手': (['客服', '助手', '顾问', 'assistant', 'consultant', '服务', '支持'], 0.8),
            '教育': (['教育', '教学', '老师', '学习', '培训', '课程', 'education'], 0.8),
            '设计': (['设计', 'design', 'ui', 'ux', '界面', '创意'], 0.8),
        }

    def analyze_intent(self, user_input: str, context: Optional[RequestContext] = None) -> IntentType:
        """
        Classify user input into an intent.

        Args:
            user_input: Raw user text
            context: Request context (currently unused by the scoring rules)

        Returns:
            The winning intent

        Raises:
            ClassificationError: If scoring fails
        """
        try:
            scores = self.score_intents(user_input)
        except Exception as e:
            self.logger.error(f"Classification failed: {str(e)}")
            raise ClassificationError(f"Failed to classify request: {str(e)}", request_content=user_input[:100])

        max_score = max(scores.values())
        winners = [intent for intent, score in scores.items() if score == max_score]

        if max_score < self.confidence_threshold:
            self.logger.info(f"Intent detected: BASIC_DESIGN (low confidence, best score {max_score:.2f})")
            return IntentType.BASIC_DESIGN

        if len(winners) > 1:
            self.logger.info(f"Intent detected: BASIC_DESIGN (tie between {[w.name for w in winners]})")
            return IntentType.BASIC_DESIGN

        intent = winners[0]
        self.logger.info(f"Intent detected: {intent.name} (score: {max_score:.2f})")
        return intent

    def score_intents(self, user_input: str) -> Dict[IntentType, float]:
        """Score every intent, in declaration order."""
        return {
            IntentType.REVERSE_ANALYSIS: self.score_prompt_content(user_input),
            IntentType.OPTIMIZE: self.score_optimization_request(user_input),
            IntentType.SCENARIO_DESIGN: self.score_scenario_request(user_input),
            IntentType.BASIC_DESIGN: 0.3,
            IntentType.CHAT: 0.1,
        }

    def make_routing_decision(self, intent: IntentType, context: Optional[RequestContext] = None) -> RoutingDecision:
        """
        Map an intent to its target agent with a confidence and justification.

        Args:
            intent: Classified intent
            context: Request context, used for the confidence nudges

        Returns:
            RoutingDecision for the request
        """
        decision = RoutingDecision(
            intent=intent,
            target_agent=INTENT_AGENT_MAP[intent],
            confidence=self.calculate_confidence(intent, context),
            reasoning=INTENT_REASONING.get(intent, '默认路由策略'),
        )
        self.logger.info(f"Routing decision made: {decision.target_agent} (confidence: {decision.confidence:.2f})")
        return decision

    def calculate_confidence(self, intent: IntentType, context: Optional[RequestContext] = None) -> float:
        confidence = BASE_CONFIDENCE[intent]

        if context is not None:
            if context.history:
                confidence += 0.05
            if len(context.user_input) > 50:
                confidence += 0.02

        return min(confidence, 1.0)

    def score_prompt_content(self, text: str) -> float:
        """Score how much the input looks like a complete structured prompt."""
        score = 0.0

        matched = [kw for kw in self.prompt_keywords if kw in text or kw.lower() in text]
        score += min(len(matched) * 0.1, 0.4)

        line_count = len(text.split('\n'))
        if line_count > 5:
            score += 0.2
        if line_count > 10:
            score += 0.1

        if len(text) > 200:
            score += 0.2
        if len(text) > 500:
            score += 0.1

        return min(score, 1.0)

    def score_optimization_request(self, text: str) -> float:
        """Score optimization keywords; short inputs are penalized."""
        lowered = text.lower()
        score = sum(weight * 0.3 for word, weight in self.optimize_keywords if word.lower() in lowered)

        if len(text) < 10 and score > 0:
            score *= 0.5

        return min(score, 1.0)

    def score_scenario_request(self, text: str) -> float:
        """Score the best-matching scenario category."""
        lowered = text.lower()
        max_score = 0.0

        for keywords, weight in self.scenario_categories.values():
            matches = sum(1 for kw in keywords if kw.lower() in lowered)
            category_score = 0.2 * matches * weight
            if category_score > max_score:
                max_score = category_score

        return min(max_score, 1.0)

